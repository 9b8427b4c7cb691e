"""
URL Signer Module

Serializes transform parameters, signs them with HMAC-SHA256 and assembles
the worker URL.

Signature payload: url[|expires][|transforms]
"""

import hmac
import hashlib
import logging
import time
from typing import Callable, Dict, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit

from .errors import MissingSourceUrlError
from .models import CanonicalParams, SignedRequest, SigningContext, TransformParam
from .settings import Settings

logger = logging.getLogger(__name__)

THUMBS_PATH = "/thumbs"

# Query keys that are not transform parameters
RESERVED_QUERY_KEYS = ('url', 'signature', 'expires')


def serialize_transforms(params: CanonicalParams) -> str:
    """
    Serialize transforms to the canonical string used for signing.

    Keys are sorted and values are left unescaped, e.g.
    'fit=cover&format=auto&quality=82&width=300'.

    Args:
        params: Transform parameters

    Returns:
        The canonical string, empty when there are no parameters
    """
    return '&'.join(f"{key}={value}" for key, value in params.sorted_items())


def build_signature_payload(context: SigningContext) -> str:
    data = context.source_url

    if context.expires_at is not None:
        data += f"|{context.expires_at}"

    if context.canonical_transforms:
        data += f"|{context.canonical_transforms}"

    return data


def generate_signature(
    secret: Union[str, bytes],
    url: str,
    expires: Optional[int],
    transforms: str
) -> str:
    """
    Generate an HMAC-SHA256 signature.

    Args:
        secret: Secret shared with the worker
        url: Source image URL
        expires: Optional unix expiry timestamp
        transforms: Canonical transform string

    Returns:
        Lowercase hex digest (64 characters)
    """
    key = secret.encode('utf-8') if isinstance(secret, str) else secret
    payload = build_signature_payload(SigningContext(url, expires, transforms))
    return hmac.new(key, payload.encode('utf-8'), hashlib.sha256).hexdigest()


def verify_signature(
    secret: Union[str, bytes],
    signature: str,
    url: str,
    expires: Optional[int],
    transforms: str
) -> bool:
    """Check a signature in constant time."""
    expected = generate_signature(secret, url, expires, transforms)
    return hmac.compare_digest(expected, signature.lower())


class SignedURLBuilder:
    """Builds signed worker URLs from settings and transform parameters."""

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.time):
        """
        Initialize the builder.

        Args:
            settings: Worker URL, secret and default expiration
            clock: Returns the current unix time
        """
        self.settings = settings
        self.clock = clock

    def get_expiration(self) -> Optional[int]:
        """Expiry timestamp for a new URL, or None if URLs never expire."""
        if self.settings.default_expiration > 0:
            return int(self.clock()) + self.settings.default_expiration
        return None

    def build_request(self, source_url: Optional[str], params: CanonicalParams) -> SignedRequest:
        """
        Sign a transform request.

        Raises:
            ConfigurationError: If the worker URL or secret is not configured
            MissingSourceUrlError: If source_url is empty
        """
        self.settings.require_signing_config()

        if not source_url:
            raise MissingSourceUrlError("Asset does not have a public URL.")

        expires = self.get_expiration()
        transform_string = serialize_transforms(params)
        signature = generate_signature(
            self.settings.signature_secret,
            source_url,
            expires,
            transform_string
        )

        return SignedRequest(
            worker_url=self.settings.worker_url.rstrip('/'),
            source_url=source_url,
            signature=signature,
            params=tuple(params.items()),
            expires_at=expires,
        )

    def build(self, source_url: Optional[str], params: CanonicalParams) -> str:
        """
        Build a signed worker URL.

        Args:
            source_url: Public URL of the source image
            params: Transform parameters

        Returns:
            '{worker}/thumbs?url=...&signature=...[&expires=...]&...'
        """
        return to_url(self.build_request(source_url, params))


def to_url(request: SignedRequest) -> str:
    query_string = urlencode(request.query_params())
    return f"{request.worker_url}{THUMBS_PATH}?{query_string}"


def build_signed_url(settings: Settings, source_url: Optional[str], params: CanonicalParams) -> str:
    """Shortcut for SignedURLBuilder(settings).build(source_url, params)."""
    return SignedURLBuilder(settings).build(source_url, params)


def parse_signed_url(url: str) -> Dict[str, object]:
    """
    Split a signed worker URL back into its parts.

    Unknown query keys are ignored.

    Returns:
        Dict with 'url', 'signature', 'expires' (int or None) and 'params'
    """
    query = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    vocabulary = {param.value for param in TransformParam}

    params = CanonicalParams({
        key: value for key, value in query.items()
        if key in vocabulary and key not in RESERVED_QUERY_KEYS
    })
    expires = query.get('expires')

    return {
        'url': query.get('url', ''),
        'signature': query.get('signature', ''),
        'expires': int(expires) if expires else None,
        'params': params,
    }


def verify_signed_url(secret: Union[str, bytes], url: str, now: Optional[float] = None) -> bool:
    """
    Re-derive the signature of a worker URL, as the worker does.

    Args:
        secret: Shared signature secret
        url: A URL produced by SignedURLBuilder
        now: Current unix time; expired URLs fail verification

    Returns:
        True if the signature matches and the URL has not expired
    """
    parts = parse_signed_url(url)
    expires = parts['expires']

    if expires is not None and expires <= (time.time() if now is None else now):
        logger.debug(f"Signed URL expired at {expires}")
        return False

    return verify_signature(
        secret,
        parts['signature'],
        parts['url'],
        expires,
        serialize_transforms(parts['params'])
    )
