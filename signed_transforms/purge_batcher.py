"""
Purge Batcher Module

Splits URLs into batches that fit Cloudflare's per-request purge limit.
"""

import logging
from typing import Iterable, List, Optional
from urllib.parse import quote_plus

from .models import MAX_PURGE_BATCH_SIZE, PurgeBatch
from .url_signer import THUMBS_PATH

logger = logging.getLogger(__name__)


def batch_urls(
    urls: Iterable[str],
    max_batch_size: int = MAX_PURGE_BATCH_SIZE,
    prefix: Optional[str] = None
) -> List[PurgeBatch]:
    """
    Partition URLs into contiguous purge batches.

    Args:
        urls: URLs to purge, in order
        max_batch_size: Maximum URLs per batch (1..30)
        prefix: Worker URL prefix covering every variant of a single asset.
            Attached to the first batch only; leave unset for volume purges.

    Returns:
        Purge batches preserving the original URL order, empty for no URLs
    """
    if not 0 < max_batch_size <= MAX_PURGE_BATCH_SIZE:
        raise ValueError(f"max_batch_size must be between 1 and {MAX_PURGE_BATCH_SIZE}")

    urls = list(urls)
    batches = []

    for start in range(0, len(urls), max_batch_size):
        chunk = tuple(urls[start:start + max_batch_size])
        batches.append(PurgeBatch(urls=chunk, prefix=prefix if start == 0 else None))

    logger.debug(f"Split {len(urls)} URL(s) into {len(batches)} purge batch(es)")
    return batches


def unique_urls(urls: Iterable[Optional[str]]) -> List[str]:
    """Drop empty and repeated URLs, keeping first occurrences in order."""
    seen = set()
    result = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result


def build_worker_prefix(worker_url: str, source_url: str) -> str:
    """
    Build the worker URL prefix shared by every transform of one source image.

    Example: https://worker.example.com/thumbs?url=https%3A%2F%2Fcdn.example.com%2Fa.jpg
    """
    return f"{worker_url.rstrip('/')}{THUMBS_PATH}?url={quote_plus(source_url)}"
