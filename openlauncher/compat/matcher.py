"""
Platform matching - decides whether an asset is usable on a machine.

This is the one place that knows the matching rule. The ranker, the build
catalog and the install service all go through PlatformMatcher.

Rule: an asset applies iff
  - its file name parsed into a platform tag,
  - the tag's OS is the running OS family,
  - the tag's architecture is the running one, a compatible alias allowed by
    the CompatibilityPolicy, or absent (generic) while the policy allows it,
  - its packaging is one the running platform can unpack.
"""
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..models.asset import Asset, PlatformTag
from ..models.platform import Arch, OsFamily, PlatformInfo

logger = logging.getLogger(__name__)


class ArchMatch(IntEnum):
    """How an asset's architecture relates to the machine (lower is better)"""
    EXACT = 0
    ALIAS = 1
    GENERIC = 2


@dataclass(frozen=True)
class CompatibilityPolicy:
    """Which foreign architectures a machine accepts, per (OS, native arch).

    Kept explicit so that e.g. running 32-bit builds on a 64-bit OS is a
    visible, configurable decision.
    """
    aliases: Dict[Tuple[OsFamily, Arch], FrozenSet[Arch]] = field(default_factory=dict, hash=False)
    allow_generic: bool = True

    @classmethod
    def default(cls, allow_32bit_on_64bit: bool = True, allow_generic: bool = True) -> 'CompatibilityPolicy':
        aliases: Dict[Tuple[OsFamily, Arch], FrozenSet[Arch]] = {
            (OsFamily.MACOS, Arch.X86_64): frozenset({Arch.UNIVERSAL}),
            (OsFamily.MACOS, Arch.ARM64): frozenset({Arch.UNIVERSAL, Arch.X86_64}),   # Rosetta
            (OsFamily.WINDOWS, Arch.ARM64): frozenset({Arch.X86_64}),                 # Windows x64 emulation
        }
        if allow_32bit_on_64bit:
            aliases[(OsFamily.WINDOWS, Arch.X86_64)] = frozenset({Arch.X86})
            aliases[(OsFamily.LINUX, Arch.X86_64)] = frozenset({Arch.X86})
            aliases[(OsFamily.WINDOWS, Arch.ARM64)] = frozenset({Arch.X86_64, Arch.X86})
        return cls(aliases=aliases, allow_generic=allow_generic)

    @classmethod
    def from_settings(cls, settings) -> 'CompatibilityPolicy':
        return cls.default(
            allow_32bit_on_64bit=settings.allow_32bit_on_64bit,
            allow_generic=settings.allow_generic_assets,
        )

    def compatible_archs(self, os_family: OsFamily, arch: Arch) -> FrozenSet[Arch]:
        return self.aliases.get((os_family, arch), frozenset())


@dataclass(frozen=True)
class Match:
    asset: Asset
    tag: PlatformTag
    arch_match: ArchMatch


class PlatformMatcher:
    """Single source of truth for asset applicability"""

    def __init__(self, policy: Optional[CompatibilityPolicy] = None):
        self.policy = policy or CompatibilityPolicy.default()

    def _arch_match(self, tag: PlatformTag, platform: PlatformInfo) -> Optional[ArchMatch]:
        if tag.arch is None:
            return ArchMatch.GENERIC if self.policy.allow_generic else None
        if platform.arch is None:
            return None
        if tag.arch == platform.arch:
            return ArchMatch.EXACT
        if tag.arch in self.policy.compatible_archs(platform.os, platform.arch):
            return ArchMatch.ALIAS
        return None

    def match(self, asset: Asset, platform: PlatformInfo) -> Optional[Match]:
        """Match an asset against a platform; None when it does not apply."""
        tag = asset.platform_tag
        if tag is None:
            logger.debug(f"[Matcher] Unrecognised platform tag: {asset.name}")
            return None
        if platform.os is None or tag.os != platform.os:
            return None
        if tag.packaging is None or tag.packaging not in platform.packaging:
            return None
        arch_match = self._arch_match(tag, platform)
        if arch_match is None:
            return None
        return Match(asset=asset, tag=tag, arch_match=arch_match)

    def is_applicable(self, asset: Asset, platform: PlatformInfo) -> bool:
        return self.match(asset, platform) is not None

    def matches(self, assets: Iterable[Asset], platform: PlatformInfo) -> List[Match]:
        return [m for m in (self.match(asset, platform) for asset in assets) if m is not None]

    def filter(self, assets: Iterable[Asset], platform: PlatformInfo) -> List[Asset]:
        """Applicable assets, in input order."""
        return [m.asset for m in self.matches(assets, platform)]


_default_matcher: Optional[PlatformMatcher] = None


def default_matcher() -> PlatformMatcher:
    """Get or create the matcher with the default policy"""
    global _default_matcher
    if _default_matcher is None:
        _default_matcher = PlatformMatcher()
    return _default_matcher
