"""
Settings Module

Loads and validates the configuration shared by URL signing and cache purging.
"""

import os
import re
import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Quality used when a transform does not set one
DEFAULT_IMAGE_QUALITY = 82

ENV_REFERENCE = re.compile(r'^\$(\w+)$|^\$\{(\w+)\}$')

TRUTHY = {'1', 'true', 'yes', 'on'}


@dataclass(frozen=True)
class PurgeCredentials:
    """Cloudflare zone and API token used for purge requests."""

    zone_id: str
    api_token: str = field(repr=False)


@dataclass(frozen=True)
class Settings:
    """
    Read-only configuration for the signing pipeline and purge flow.

    The signature secret and API key are excluded from repr() so settings can
    be logged safely.
    """

    worker_url: Optional[str] = None
    signature_secret: Optional[str] = field(default=None, repr=False)
    default_expiration: int = 0
    enable_cache_purge: bool = False
    zone_id: Optional[str] = None
    api_key: Optional[str] = field(default=None, repr=False)

    # Platform-wide transform policy
    transform_gifs: bool = True
    transform_svgs: bool = True
    default_image_quality: int = DEFAULT_IMAGE_QUALITY

    def require_signing_config(self) -> None:
        """
        Ensure the worker URL and signature secret are set.

        Raises:
            ConfigurationError: If either value is missing
        """
        if not self.worker_url or not self.signature_secret:
            raise ConfigurationError("Worker URL and Signature Secret must be configured.")

    def purge_credentials(self) -> Optional[PurgeCredentials]:
        """Zone ID and API key, or None if either is missing."""
        zone_id = parse_env(self.zone_id)
        api_key = parse_env(self.api_key)
        if not zone_id or not api_key:
            return None
        return PurgeCredentials(zone_id=zone_id, api_token=api_key)


def parse_env(value: Optional[str], environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    Resolve a '$VAR' or '${VAR}' reference against the environment.

    Args:
        value: A literal value or an environment variable reference
        environ: Mapping to resolve against (defaults to os.environ)

    Returns:
        The resolved value, the literal value, or None if the reference is unset
    """
    if value is None:
        return None

    environ = os.environ if environ is None else environ
    value = value.strip()
    match = ENV_REFERENCE.match(value)
    if match:
        return environ.get(match.group(1) or match.group(2))

    return value


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in TRUTHY


def _parse_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or value.strip() == '':
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a whole number, got {value!r}") from None


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from the environment.

    Values come from config.env (or .env) when present. Any value may be an
    environment reference such as '$CLOUDFLARE_API_KEY'.

    Args:
        env_file: Optional explicit dotenv file

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If a value cannot be parsed or fails validation
    """
    if env_file:
        load_dotenv(env_file)
    elif os.path.exists('config.env'):
        load_dotenv('config.env')
    else:
        load_dotenv()

    def env(name: str) -> Optional[str]:
        return parse_env(os.getenv(name))

    settings = Settings(
        worker_url=env('CFST_WORKER_URL') or None,
        signature_secret=env('CFST_SIGNATURE_SECRET') or None,
        default_expiration=_parse_int('CFST_DEFAULT_EXPIRATION', env('CFST_DEFAULT_EXPIRATION'), 0),
        enable_cache_purge=_parse_bool(env('CFST_ENABLE_CACHE_PURGE')),
        # Kept unresolved so credentials are read at purge time
        zone_id=os.getenv('CLOUDFLARE_ZONE_ID') or None,
        api_key=os.getenv('CLOUDFLARE_API_KEY') or None,
        transform_gifs=_parse_bool(env('CFST_TRANSFORM_GIFS'), default=True),
        transform_svgs=_parse_bool(env('CFST_TRANSFORM_SVGS'), default=True),
        default_image_quality=_parse_int(
            'CFST_DEFAULT_IMAGE_QUALITY', env('CFST_DEFAULT_IMAGE_QUALITY'), DEFAULT_IMAGE_QUALITY
        ),
    )

    errors = validate_settings(settings)
    if errors:
        raise ConfigurationError('; '.join(errors))

    logger.debug(f"Loaded settings: {settings}")
    return settings


def validate_settings(settings: Settings) -> List[str]:
    """
    Validate settings.

    Args:
        settings: Settings to check

    Returns:
        List of problems, empty when the settings are valid
    """
    errors = []

    if not settings.worker_url:
        errors.append("Worker URL is required.")
    else:
        parsed = urlparse(settings.worker_url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            errors.append("Worker URL must be a valid URL.")

    if not settings.signature_secret:
        errors.append("Signature Secret is required.")

    if settings.default_expiration < 0:
        errors.append("Default Expiration must be a number greater than or equal to 0.")

    if not 0 < settings.default_image_quality <= 100:
        errors.append("Default image quality must be between 1 and 100.")

    if settings.enable_cache_purge and settings.purge_credentials() is None:
        logger.warning("Cache purge is enabled but Zone ID or API Key is not configured")

    return errors
