"""
Cloudflare Signed Transforms

Signed image transform URLs for a Cloudflare Worker, plus cache purging when
source assets change.
"""

from .errors import (
    ConfigurationError,
    InvalidPositionError,
    MissingSourceUrlError,
    ProviderRejectionError,
    SignedTransformsError,
    TransportError,
    UnsupportedAssetError,
)
from .models import AssetRef, CanonicalParams, FocalPoint, PurgeBatch, PurgeOutcome, TransformSpec
from .settings import Settings, load_settings
from .image_transformer import ImageTransformer
from .cache_invalidation import CacheInvalidator
from .purge_queue import PurgeImageCacheJob, PurgeQueue

__version__ = "2.0.0"
