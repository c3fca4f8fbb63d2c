"""
Tests for BuildCatalog caching and fetch coalescing.
"""
import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, Mock

import pytest

from openlauncher.errors import CatalogNetworkError
from openlauncher.services.build_catalog import BuildCatalog

from conftest import make_build

RELEASE = make_build("v2.1", "game-2.1-win-x64.zip", "game-2.1-linux-x64.tar")
BETA = make_build("v2.2-beta", "game-2.2-win-x64.zip", prerelease=True)
LINUX_ONLY = make_build("v2.0", "game-2.0-linux-x64.tar")
ALL_BUILDS = [BETA, RELEASE, LINUX_ONLY]


def _fake_fetch(game, include_prerelease):
    if include_prerelease:
        return list(ALL_BUILDS)
    return [b for b in ALL_BUILDS if b.is_release]


@pytest.fixture
def source():
    mock = Mock()
    mock.fetch_builds = AsyncMock(side_effect=_fake_fetch)
    return mock


@pytest.fixture
def catalog(source):
    return BuildCatalog(source)


@pytest.mark.asyncio
async def test_releases_only(catalog, source, game):
    builds = await catalog.get_builds(game, False)
    assert [b.version for b in builds] == ["v2.1", "v2.0"]
    source.fetch_builds.assert_awaited_once_with(game, False)


@pytest.mark.asyncio
async def test_cached_list_is_reused(catalog, source, game):
    await catalog.get_builds(game, False)
    await catalog.get_builds(game, False)
    assert source.fetch_builds.await_count == 1


@pytest.mark.asyncio
async def test_enabling_prereleases_refetches(catalog, source, game):
    await catalog.get_builds(game, False)
    builds = await catalog.get_builds(game, True)
    assert [b.version for b in builds] == ["v2.2-beta", "v2.1", "v2.0"]
    assert source.fetch_builds.await_count == 2
    source.fetch_builds.assert_awaited_with(game, True)


@pytest.mark.asyncio
async def test_disabling_prereleases_filters_locally(catalog, source, game):
    await catalog.get_builds(game, True)
    builds = await catalog.get_builds(game, False)
    assert [b.version for b in builds] == ["v2.1", "v2.0"]
    assert source.fetch_builds.await_count == 1
    # The wider list stays cached
    assert len(catalog.cached_builds(game)) == 3


@pytest.mark.asyncio
async def test_applicable_builds_for_platform(catalog, game, win_x64):
    builds = await catalog.get_applicable_builds(game, True, win_x64)
    assert [b.version for b in builds] == ["v2.2-beta", "v2.1"]

    builds = await catalog.get_applicable_builds(game, False, win_x64)
    assert [b.version for b in builds] == ["v2.1"]


@pytest.mark.asyncio
async def test_failed_fetch_leaves_cache_untouched(catalog, source, game):
    await catalog.get_builds(game, False)
    source.fetch_builds.side_effect = CatalogNetworkError("offline", game_id=game.id)

    with pytest.raises(CatalogNetworkError):
        await catalog.get_builds(game, True)

    assert [b.version for b in catalog.cached_builds(game)] == ["v2.1", "v2.0"]
    # The release-only view is still served from the cache
    assert [b.version for b in await catalog.get_builds(game, False)] == ["v2.1", "v2.0"]


@pytest.mark.asyncio
async def test_failed_first_fetch_caches_nothing(catalog, source, game):
    source.fetch_builds.side_effect = CatalogNetworkError("offline", game_id=game.id)
    with pytest.raises(CatalogNetworkError):
        await catalog.get_builds(game, False)
    assert catalog.cached_builds(game) is None


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_fetch(catalog, source, game):
    release = asyncio.Event()

    async def slow_fetch(game, include_prerelease):
        await release.wait()
        return _fake_fetch(game, include_prerelease)

    source.fetch_builds.side_effect = slow_fetch
    first = asyncio.ensure_future(catalog.get_builds(game, True))
    second = asyncio.ensure_future(catalog.get_builds(game, True))
    await asyncio.sleep(0)
    release.set()

    results = await asyncio.gather(first, second)
    assert results[0] == results[1]
    assert source.fetch_builds.await_count == 1


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_fetch(catalog, source, game):
    release = asyncio.Event()

    async def slow_fetch(game, include_prerelease):
        await release.wait()
        return _fake_fetch(game, include_prerelease)

    source.fetch_builds.side_effect = slow_fetch
    first = asyncio.ensure_future(catalog.get_builds(game, False))
    second = asyncio.ensure_future(catalog.get_builds(game, False))
    await asyncio.sleep(0)
    first.cancel()
    release.set()

    assert [b.version for b in await second] == ["v2.1", "v2.0"]
    with pytest.raises(asyncio.CancelledError):
        await first


@pytest.mark.asyncio
async def test_ttl_expiry_refetches(source, game):
    catalog = BuildCatalog(source, ttl=60)
    await catalog.get_builds(game, False)
    await catalog.get_builds(game, False)
    assert source.fetch_builds.await_count == 1

    entry = catalog._entries[game.id]
    catalog._entries[game.id] = replace(entry, fetched_at=entry.fetched_at - 61)
    await catalog.get_builds(game, False)
    assert source.fetch_builds.await_count == 2


@pytest.mark.asyncio
async def test_invalidate(catalog, source, game):
    await catalog.get_builds(game, False)
    catalog.invalidate(game)
    assert catalog.cached_builds(game) is None
    await catalog.get_builds(game, False)
    catalog.invalidate()
    assert catalog.cached_builds(game) is None
    assert source.fetch_builds.await_count == 2
