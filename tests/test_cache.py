"""Tests for the mtime-validated content cache."""

import os

import pytest

from sessionscope.cache import ContentCache, read_text
from sessionscope.errors import CacheLoadError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class CountingLoader:
    def __init__(self):
        self.calls = []

    def __call__(self, path):
        self.calls.append(path)
        return read_text(path)


def write(path, text, mtime=None):
    path.write_text(text)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.mark.asyncio
class TestContentCache:
    @pytest.fixture
    def loader(self):
        return CountingLoader()

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, loader, clock):
        return ContentCache(max_entries=3, ttl=300, loader=loader, clock=clock)

    async def test_hit_does_not_reload(self, cache, loader, tmp_path):
        path = write(tmp_path / "s.jsonl", "hello\n", mtime=1_700_000_000)

        assert await cache.get(path) == "hello\n"
        assert await cache.get(path) == "hello\n"

        assert len(loader.calls) == 1
        stats = cache.stats
        assert (stats.hits, stats.misses, stats.loads) == (1, 1, 1)
        assert stats.hit_rate == 0.5

    async def test_str_and_path_share_entry(self, cache, loader, tmp_path):
        path = write(tmp_path / "s.jsonl", "x\n")
        await cache.get(path)
        await cache.get(str(path))
        assert len(loader.calls) == 1

    async def test_mtime_change_reloads(self, cache, loader, tmp_path):
        path = write(tmp_path / "s.jsonl", "one\n", mtime=1_700_000_000)
        assert await cache.get(path) == "one\n"

        write(path, "one\ntwo\n", mtime=1_700_000_010)
        assert await cache.get(path) == "one\ntwo\n"
        assert len(loader.calls) == 2

    async def test_ttl_expiry_reloads(self, cache, loader, clock, tmp_path):
        path = write(tmp_path / "s.jsonl", "x\n", mtime=1_700_000_000)
        await cache.get(path)

        clock.now += 299
        await cache.get(path)
        assert len(loader.calls) == 1

        clock.now += 1
        await cache.get(path)
        assert len(loader.calls) == 2

    async def test_lru_eviction(self, cache, tmp_path):
        paths = [write(tmp_path / f"{i}.jsonl", f"{i}\n") for i in range(3)]
        for p in paths:
            await cache.get(p)

        # touch 0 so 1 becomes least recently used
        await cache.get(paths[0])
        extra = write(tmp_path / "extra.jsonl", "e\n")
        await cache.get(extra)

        assert len(cache) == 3
        assert paths[0] in cache
        assert paths[1] not in cache
        assert extra in cache
        assert cache.stats.evictions == 1

    async def test_expired_entries_evicted_first(self, cache, clock, tmp_path):
        old = write(tmp_path / "old.jsonl", "o\n")
        await cache.get(old)
        clock.now += 400
        fresh = write(tmp_path / "fresh.jsonl", "f\n")
        await cache.get(fresh)

        assert old not in cache
        assert fresh in cache

    async def test_invalidate(self, cache, loader, tmp_path):
        path = write(tmp_path / "s.jsonl", "x\n")
        await cache.get(path)
        cache.invalidate(str(path))
        assert path not in cache

        await cache.get(path)
        assert len(loader.calls) == 2

    async def test_invalidate_all(self, cache, tmp_path):
        for i in range(3):
            await cache.get(write(tmp_path / f"{i}.jsonl", "x\n"))
        cache.invalidate_all()
        assert len(cache) == 0

    async def test_missing_file_raises(self, cache, tmp_path):
        missing = tmp_path / "gone.jsonl"
        with pytest.raises(CacheLoadError) as exc_info:
            await cache.get(missing)
        assert exc_info.value.path == missing
        assert isinstance(exc_info.value.__cause__, OSError)

    async def test_loader_error_raises(self, clock, tmp_path):
        def broken(path):
            raise PermissionError("denied")

        cache = ContentCache(loader=broken, clock=clock)
        path = write(tmp_path / "s.jsonl", "x\n")
        with pytest.raises(CacheLoadError, match="denied"):
            await cache.get(path)
        assert path not in cache

    async def test_undecodable_bytes_replaced(self, cache, tmp_path):
        path = tmp_path / "bin.jsonl"
        path.write_bytes(b"ok \xff\xfe\n")
        text = await cache.get(path)
        assert text.startswith("ok ")
        assert "�" in text
