"""Value types: games, builds, assets, platforms and install records."""
from typing import Optional

from .asset import Asset, PlatformTag, parse_platform_tag
from .build import Build
from .game import Game
from .install_state import InstallState
from .platform import Arch, OsFamily, Packaging, PlatformInfo


def is_applicable_for_current_platform(asset: Asset, platform_info: Optional[PlatformInfo] = None,
                                       matcher=None) -> bool:
    """Whether an asset can be installed and run here.

    Delegates to the platform matcher so there is one matching rule.
    """
    from ..compat.matcher import default_matcher

    matcher = matcher or default_matcher()
    return matcher.is_applicable(asset, platform_info or PlatformInfo.current())


__all__ = [
    'Arch',
    'Asset',
    'Build',
    'Game',
    'InstallState',
    'OsFamily',
    'Packaging',
    'PlatformInfo',
    'PlatformTag',
    'is_applicable_for_current_platform',
    'parse_platform_tag',
]
