"""
BuildCatalog - lists the builds available for a game.

Responsibilities:
- Fetch builds from a ReleaseSource
- Cache the last fetched list per game, remembering whether it includes prereleases
- Coalesce concurrent fetches for the same game and scope
- Filter locally when a narrower (release-only) view is requested
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..compat.matcher import PlatformMatcher, default_matcher
from ..compat.ranker import has_applicable_asset
from ..models.build import Build
from ..models.game import Game
from ..models.platform import PlatformInfo
from ..stores.base import ReleaseSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    builds: Tuple[Build, ...]
    includes_prerelease: bool
    fetched_at: float


class BuildCatalog:
    """Per-game build listings with in-memory caching."""

    def __init__(self, source: ReleaseSource, ttl: Optional[float] = None):
        """Initialize BuildCatalog.

        Args:
            source: Where builds are fetched from
            ttl: Seconds a cache entry stays fresh; None means until invalidated
        """
        self.source = source
        self.ttl = ttl
        self._entries: Dict[str, CatalogEntry] = {}
        self._in_flight: Dict[Tuple[str, bool], asyncio.Task] = {}

    def _is_fresh(self, entry: CatalogEntry) -> bool:
        if self.ttl is None:
            return True
        return (time.monotonic() - entry.fetched_at) < self.ttl

    def _needs_fetch(self, entry: Optional[CatalogEntry], include_prerelease: bool) -> bool:
        if entry is None or not self._is_fresh(entry):
            return True
        return include_prerelease and not entry.includes_prerelease

    async def _fetch(self, game: Game, include_prerelease: bool) -> CatalogEntry:
        logger.info(f"[Catalog] Fetching builds for {game.id} from {self.source.source_name} "
                    f"(prerelease={include_prerelease})")
        builds = await self.source.fetch_builds(game, include_prerelease)
        entry = CatalogEntry(
            builds=tuple(builds),
            includes_prerelease=include_prerelease,
            fetched_at=time.monotonic(),
        )
        # Whole-list replacement; last completed fetch wins
        self._entries[game.id] = entry
        return entry

    async def _fetch_coalesced(self, game: Game, include_prerelease: bool) -> CatalogEntry:
        key = (game.id, include_prerelease)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(game, include_prerelease))
            self._in_flight[key] = task
            task.add_done_callback(lambda _t: self._in_flight.pop(key, None))
        else:
            logger.debug(f"[Catalog] Joining in-flight fetch for {game.id}")
        # shield: one caller giving up must not cancel the fetch for the others
        return await asyncio.shield(task)

    async def get_builds(self, game: Game, include_prerelease: bool) -> List[Build]:
        """Get builds for a game, newest first as the source lists them.

        Turning prerelease inclusion on forces a fetch unless the cached list
        already includes prereleases. Turning it off reuses the cached list,
        keeping only release builds.

        Raises:
            CatalogFetchError: If a fetch was needed and failed. The cache is unchanged.
        """
        entry = self._entries.get(game.id)
        if self._needs_fetch(entry, include_prerelease):
            entry = await self._fetch_coalesced(game, include_prerelease)

        if include_prerelease:
            return list(entry.builds)
        return [b for b in entry.builds if b.is_release]

    async def get_applicable_builds(
        self,
        game: Game,
        include_prerelease: bool,
        platform: Optional[PlatformInfo] = None,
        matcher: Optional[PlatformMatcher] = None,
    ) -> List[Build]:
        """Builds with at least one asset usable on this platform."""
        platform = platform or PlatformInfo.current()
        matcher = matcher or default_matcher()
        builds = await self.get_builds(game, include_prerelease)
        return [b for b in builds if has_applicable_asset(b, platform, matcher)]

    def cached_builds(self, game: Game) -> Optional[List[Build]]:
        entry = self._entries.get(game.id)
        return list(entry.builds) if entry else None

    def invalidate(self, game: Optional[Game] = None) -> None:
        """Forget cached builds for one game, or for all games."""
        if game is None:
            self._entries.clear()
        else:
            self._entries.pop(game.id, None)
