"""
Cloudflare Purger Module

Sends cache purge requests to the Cloudflare API.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .errors import TransportError
from .models import PurgeBatch, PurgeOutcome
from .settings import PurgeCredentials

logger = logging.getLogger(__name__)

# API configuration
CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
REQUEST_TIMEOUT = 30


def _error_messages(body: Any) -> List[str]:
    """Flatten Cloudflare's error objects into readable strings."""
    if not isinstance(body, dict):
        return []

    messages = []
    for error in body.get('errors') or []:
        if isinstance(error, dict):
            message = error.get('message', str(error))
            code = error.get('code')
            messages.append(f"{code}: {message}" if code is not None else message)
        else:
            messages.append(str(error))
    return messages


def to_cloudflare_prefix(prefix: str) -> str:
    """Cloudflare matches prefixes without the URL scheme."""
    for scheme in ('https://', 'http://'):
        if prefix.startswith(scheme):
            return prefix[len(scheme):]
    return prefix


class CloudflarePurger:
    """Purges URLs, tags or whole zones from Cloudflare's cache."""

    def __init__(
        self,
        credentials: PurgeCredentials,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT
    ):
        """
        Initialize the purger.

        Args:
            credentials: Zone ID and API token with the Zone.Cache Purge permission
            session: Optional pre-configured requests session
            timeout: Request timeout in seconds
        """
        self.zone_id = credentials.zone_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {credentials.api_token}',
            'Content-Type': 'application/json',
        })

    def _get_api_url(self, endpoint: str) -> str:
        """Build full API URL."""
        return f"{CLOUDFLARE_API_BASE}/zones/{self.zone_id}{endpoint}"

    def dispatch(self, batch: PurgeBatch) -> PurgeOutcome:
        """
        Purge one batch of URLs.

        Only the batch's URLs are sent. A worker prefix attached to the batch
        is purged separately with purge_prefixes().

        Args:
            batch: URLs to purge

        Returns:
            PurgeOutcome; a rejected purge is reported, not raised

        Raises:
            TransportError: If Cloudflare could not be reached
        """
        return self.purge({'files': list(batch.urls)})

    def purge_tags(self, tags: Sequence[str]) -> PurgeOutcome:
        """Purge everything cached under the given cache tags."""
        return self.purge({'tags': list(tags)})

    def purge_prefixes(self, prefixes: Sequence[str]) -> PurgeOutcome:
        """Purge cached URLs starting with any of the given prefixes."""
        return self.purge({'prefixes': [to_cloudflare_prefix(prefix) for prefix in prefixes]})

    def purge_everything(self) -> PurgeOutcome:
        """Purge the entire zone. Use with care."""
        logger.warning(f"Purging everything in zone {self.zone_id}")
        return self.purge({'purge_everything': True})

    def purge(self, payload: Dict[str, Any]) -> PurgeOutcome:
        """
        POST a raw purge_cache payload.

        Args:
            payload: One of {files}, {tags}, {prefixes} or {purge_everything}

        Returns:
            PurgeOutcome describing Cloudflare's answer
        """
        url = self._get_api_url("/purge_cache")
        logger.info(f"Purging from Cloudflare: {payload}")

        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to purge Cloudflare cache: {e}")
            raise TransportError(f"Purge request failed: {e}") from e

        status_code = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = None

        logger.info(f"Cloudflare API Response (Status {status_code}): {body}")

        success = status_code == 200 and isinstance(body, dict) and body.get('success') is True
        errors = _error_messages(body)
        if not success and not errors:
            errors = ['Unknown error' if body is not None else 'Invalid JSON response']

        if success:
            count = len(payload.get('files', []))
            logger.info(f"Successfully purged {count} URL(s) from Cloudflare cache")
            return PurgeOutcome(success=True, status_code=status_code)

        logger.warning(
            f"Cloudflare cache purge failed. Status: {status_code}, Errors: {'; '.join(errors)}"
        )
        return PurgeOutcome(success=False, status_code=status_code, errors=errors)


def dispatch(
    batch: PurgeBatch,
    credentials: PurgeCredentials,
    session: Optional[requests.Session] = None
) -> PurgeOutcome:
    """Purge one batch with a short-lived purger."""
    return CloudflarePurger(credentials, session=session).dispatch(batch)


def check_connection(zone_id: str, api_token: str) -> Tuple[bool, str]:
    """
    Test Cloudflare API connection and zone access.

    Args:
        zone_id: Cloudflare Zone ID
        api_token: API token

    Returns:
        Tuple of (success, message)
    """
    url = f"{CLOUDFLARE_API_BASE}/zones/{zone_id}"
    headers = {'Authorization': f'Bearer {api_token}'}

    try:
        response = requests.get(url, headers=headers, timeout=10)
        result = response.json()

        if result.get('success'):
            zone = result.get('result', {})
            return True, f"Connected! Zone: {zone.get('name', zone_id)}"
        else:
            return False, f"API Error: {'; '.join(_error_messages(result))}"

    except requests.RequestException as e:
        return False, f"Connection failed: {e}"
    except ValueError:
        return False, "Connection failed: invalid JSON response"
