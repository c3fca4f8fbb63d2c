"""
Asset ranking - picks "the" asset to download for a build.

The order is total and depends only on the assets themselves, never on the
order the release source listed them in:

1. exact architecture before a compatible alias or an OS-only asset
2. single-file artifacts before archives that need extracting
3. OS+arch tags before OS-only tags
4. download URI, lexically
"""
from typing import Iterable, List, Optional, Tuple

from ..models.asset import Asset
from ..models.build import Build
from ..models.platform import PlatformInfo
from .matcher import ArchMatch, Match, PlatformMatcher, default_matcher


def _sort_key(match: Match) -> Tuple[int, int, int, str]:
    return (
        0 if match.arch_match is ArchMatch.EXACT else 1,
        1 if match.tag.packaging.needs_extraction else 0,
        -match.tag.specificity,
        match.asset.uri,
    )


def rank(assets: Iterable[Asset], platform: PlatformInfo,
         matcher: Optional[PlatformMatcher] = None) -> List[Asset]:
    """Order the applicable assets best to worst.

    Inapplicable assets are dropped. An empty list means nothing applies.
    """
    matcher = matcher or default_matcher()
    return [m.asset for m in sorted(matcher.matches(assets, platform), key=_sort_key)]


def select_best_asset(build: Build, platform: PlatformInfo,
                      matcher: Optional[PlatformMatcher] = None) -> Optional[Asset]:
    """Best asset of a build for this platform, or None if nothing applies."""
    ranked = rank(build.assets, platform, matcher)
    return ranked[0] if ranked else None


def has_applicable_asset(build: Build, platform: PlatformInfo,
                         matcher: Optional[PlatformMatcher] = None) -> bool:
    matcher = matcher or default_matcher()
    return any(matcher.is_applicable(asset, platform) for asset in build.assets)
