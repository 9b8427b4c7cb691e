"""
Tests for splitting purge URLs into Cloudflare-sized batches.
"""

import pytest

from signed_transforms.models import PurgeBatch
from signed_transforms.purge_batcher import batch_urls, build_worker_prefix, unique_urls


def make_urls(count):
    return [f"https://cdn.example.com/img/{i}.jpg" for i in range(count)]


class TestBatchUrls:

    def test_65_urls_make_three_batches_in_order(self):
        urls = make_urls(65)
        batches = batch_urls(urls, max_batch_size=30)

        assert [len(b.urls) for b in batches] == [30, 30, 5]
        assert [url for b in batches for url in b.urls] == urls

    def test_no_urls_no_batches(self):
        assert batch_urls([]) == []

    def test_default_batch_size_is_30(self):
        assert [len(b.urls) for b in batch_urls(make_urls(31))] == [30, 1]

    def test_prefix_attached_to_first_batch_only(self):
        batches = batch_urls(make_urls(40), prefix="https://worker.example.com/thumbs?url=x")
        assert batches[0].prefix == "https://worker.example.com/thumbs?url=x"
        assert batches[1].prefix is None

    def test_no_prefix_for_volume_purges(self):
        assert all(b.prefix is None for b in batch_urls(make_urls(45)))

    @pytest.mark.parametrize("size", [0, 31, -1])
    def test_invalid_batch_size(self, size):
        with pytest.raises(ValueError):
            batch_urls(make_urls(3), max_batch_size=size)

    def test_accepts_any_iterable(self):
        batches = batch_urls(url for url in make_urls(3))
        assert len(batches) == 1


class TestPurgeBatch:

    def test_rejects_empty_batch(self):
        with pytest.raises(ValueError):
            PurgeBatch(urls=())

    def test_rejects_more_than_30_urls(self):
        with pytest.raises(ValueError):
            PurgeBatch(urls=tuple(make_urls(31)))


class TestHelpers:

    def test_unique_urls_keeps_first_occurrence(self):
        assert unique_urls(["a", None, "b", "a", "", "c"]) == ["a", "b", "c"]

    def test_worker_prefix(self):
        prefix = build_worker_prefix("https://worker.example.com/", "https://cdn.example.com/a b.jpg")
        assert prefix == "https://worker.example.com/thumbs?url=https%3A%2F%2Fcdn.example.com%2Fa+b.jpg"
