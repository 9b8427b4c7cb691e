"""
Cache Invalidation Module

Queues purges of transformed images when their source asset changes.
"""

import logging
from typing import Iterable, List, Optional

import requests

from .cloudflare_purger import CloudflarePurger
from .errors import SignedTransformsError
from .image_transformer import ImageTransformer
from .models import AssetRef, TransformSpec
from .purge_batcher import batch_urls, build_worker_prefix, unique_urls
from .purge_queue import PurgeImageCacheJob, TaskQueue
from .settings import Settings

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Turns asset changes into queued Cloudflare purge jobs."""

    def __init__(
        self,
        settings: Settings,
        queue: TaskQueue,
        transformer: Optional[ImageTransformer] = None,
        session: Optional[requests.Session] = None
    ):
        self.settings = settings
        self.queue = queue
        self.transformer = transformer or ImageTransformer(settings)
        self.session = session

    def transform_urls(self, asset: AssetRef, transforms: Iterable[TransformSpec]) -> List[str]:
        """
        Signed URLs of the given transforms of an asset.

        Only possible when URLs never expire; expiring URLs change on every
        call so there is nothing stable to purge.
        """
        if self.settings.default_expiration > 0:
            logger.debug("Signed URLs expire, relying on the worker prefix instead")
            return []

        urls = []
        for transform in transforms:
            try:
                urls.append(self.transformer.get_transform_url(asset, transform))
            except SignedTransformsError as e:
                logger.warning(f"Skipping transform {transform}: {e}")
        return urls

    def purge_asset_cache(self, asset: AssetRef, transforms: Iterable[TransformSpec] = ()) -> int:
        """
        Queue a purge of an asset and its transformed variants.

        Args:
            asset: The changed asset
            transforms: Named transforms whose URLs should be purged

        Returns:
            Number of URLs queued, 0 when purging is disabled or the asset
            has no public URL
        """
        if not self.settings.enable_cache_purge:
            logger.info("Cache purge is not enabled")
            return 0

        if not asset.public_url:
            logger.warning("Cannot purge cache for an asset without a public URL")
            return 0

        urls = unique_urls([asset.public_url] + self.transform_urls(asset, transforms))
        prefix = None
        if self.settings.worker_url:
            prefix = build_worker_prefix(self.settings.worker_url, asset.public_url)

        for batch in batch_urls(urls, prefix=prefix):
            self.queue.push(PurgeImageCacheJob.from_batch(batch))

        logger.info(f"Queued {len(urls)} URL(s) for cache purging: {asset.public_url}")
        return len(urls)

    def purge_volume_cache(self, assets: Iterable[AssetRef]) -> int:
        """
        Queue a purge of every asset in a volume.

        Args:
            assets: The volume's assets

        Returns:
            Number of URLs queued, 0 when purging is disabled or nothing matched
        """
        if not self.settings.enable_cache_purge:
            logger.info("Cache purge is not enabled")
            return 0

        urls = []
        for asset in assets:
            if asset.public_url:
                urls.append(asset.public_url)
            else:
                logger.warning(f"Skipping asset without public URL ({asset.mime_type})")

        urls = unique_urls(urls)
        batches = batch_urls(urls)
        for batch in batches:
            self.queue.push(PurgeImageCacheJob.from_batch(batch))

        logger.info(f"Queued {len(urls)} URL(s) in {len(batches)} batch(es) for cache purging")
        return len(urls)

    def purge_everything(self) -> bool:
        """
        Purge the entire Cloudflare zone immediately.

        Returns:
            True if Cloudflare confirmed the purge
        """
        credentials = self.settings.purge_credentials()
        if not self.settings.enable_cache_purge or credentials is None:
            logger.warning("Cannot purge everything: cache purge is not enabled or configured")
            return False

        outcome = CloudflarePurger(credentials, session=self.session).purge_everything()
        return outcome.success

    def invalidate_asset_transforms(self, asset: AssetRef, transforms: Iterable[TransformSpec] = ()) -> None:
        """
        Hook for asset updates and replacements.

        Never raises: a failed purge must not fail the asset save.
        """
        try:
            self.purge_asset_cache(asset, transforms)
        except Exception:
            logger.exception(f"Failed to queue cache purge for {asset.public_url}")
