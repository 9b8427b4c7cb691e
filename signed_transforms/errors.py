"""
Errors Module

Exceptions raised while signing transform URLs and purging cached images.
"""

from typing import List, Optional


class SignedTransformsError(Exception):
    """Base class for every error raised by this package."""
    pass


class ConfigurationError(SignedTransformsError):
    """Worker URL, signature secret or another required setting is missing or invalid."""
    pass


class UnsupportedAssetError(SignedTransformsError):
    """The asset's mime type may not be transformed."""
    pass


class InvalidPositionError(SignedTransformsError):
    """A transform position is not of the form '{top|center|bottom}-{left|center|right}'."""
    pass


class MissingSourceUrlError(SignedTransformsError):
    """The asset has no public URL for the worker to fetch."""
    pass


class TransportError(SignedTransformsError):
    """A purge request could not reach Cloudflare."""
    pass


class ProviderRejectionError(SignedTransformsError):
    """Cloudflare answered a purge request without reporting success."""

    def __init__(self, status_code: int, errors: Optional[List[str]] = None):
        self.status_code = status_code
        self.errors = list(errors or [])
        detail = '; '.join(self.errors) or 'Unknown error'
        super().__init__(f"Cache purge rejected (status {status_code}): {detail}")
