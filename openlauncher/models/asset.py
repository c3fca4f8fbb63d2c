"""
Release assets and the platform tags parsed from their file names.

Release hosts only give us a file name per artifact, e.g.
``OpenRCT2-0.4.5-windows-portable-x64.zip``. The OS, architecture and
packaging are read from that name. Anything ambiguous produces no tag, and an
untagged asset is never applicable.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from .platform import Arch, OsFamily, Packaging

# Longest suffixes first so ".tar.gz" wins over ".gz"
_PACKAGING_SUFFIXES: Tuple[Tuple[str, Packaging], ...] = (
    ('.tar.bz2', Packaging.TAR_BZ2),
    ('.tar.gz', Packaging.TAR_GZ),
    ('.tar.xz', Packaging.TAR_XZ),
    ('.appimage', Packaging.APPIMAGE),
    ('.tgz', Packaging.TAR_GZ),
    ('.txz', Packaging.TAR_XZ),
    ('.tar', Packaging.TAR),
    ('.zip', Packaging.ZIP),
)

# token -> (os, arch); either side may be None
_PLATFORM_TOKENS = {
    'windows': (OsFamily.WINDOWS, None),
    'win': (OsFamily.WINDOWS, None),
    'win32': (OsFamily.WINDOWS, Arch.X86),
    'win64': (OsFamily.WINDOWS, Arch.X86_64),
    'linux': (OsFamily.LINUX, None),
    'macos': (OsFamily.MACOS, None),
    'osx': (OsFamily.MACOS, None),
    'darwin': (OsFamily.MACOS, None),
    'mac': (OsFamily.MACOS, None),
    'x64': (None, Arch.X86_64),
    'x86_64': (None, Arch.X86_64),
    'amd64': (None, Arch.X86_64),
    'x86': (None, Arch.X86),
    'i386': (None, Arch.X86),
    'i686': (None, Arch.X86),
    'arm64': (None, Arch.ARM64),
    'aarch64': (None, Arch.ARM64),
    'universal': (None, Arch.UNIVERSAL),
}

# Companion artifacts that are never a runnable build
_EXCLUDED_TOKENS = frozenset({'symbols', 'pdb', 'dbg', 'debug', 'source', 'sources', 'src'})

# "x86-64" and "x86_64" are one token; "_" otherwise separates like "-" does
_TOKEN_RE = re.compile(r'x86[-_]64|[^-_.\s]+')


@dataclass(frozen=True)
class PlatformTag:
    """What an asset says about where it runs"""
    os: OsFamily
    arch: Optional[Arch]              # None: OS-only ("generic") tag
    packaging: Optional[Packaging]    # None: a format we cannot unpack

    @property
    def specificity(self) -> int:
        return 2 if self.arch is not None else 1


def split_packaging(name: str) -> Tuple[str, Optional[Packaging]]:
    """Split a file name into (lowercased stem, packaging); packaging is None if unknown."""
    lowered = name.lower()
    for suffix, packaging in _PACKAGING_SUFFIXES:
        if lowered.endswith(suffix):
            return lowered[:-len(suffix)], packaging
    return lowered, None


def _tokens(stem: str):
    for token in _TOKEN_RE.findall(stem):
        yield 'x86_64' if token == 'x86-64' else token


@lru_cache(maxsize=1024)
def parse_platform_tag(file_name: str) -> Optional[PlatformTag]:
    """Parse the platform tag out of an asset file name.

    Returns None when no OS is named or when the name contradicts itself
    (two different OSes or two different architectures). Debug symbol and
    source bundles get no tag either.
    """
    stem, packaging = split_packaging(file_name)
    os_seen = set()
    arch_seen = set()
    for token in _tokens(stem):
        if token in _EXCLUDED_TOKENS:
            return None
        os_family, arch = _PLATFORM_TOKENS.get(token, (None, None))
        if os_family is not None:
            os_seen.add(os_family)
        if arch is not None:
            arch_seen.add(arch)

    if len(os_seen) != 1 or len(arch_seen) > 1:
        return None
    return PlatformTag(
        os=os_seen.pop(),
        arch=arch_seen.pop() if arch_seen else None,
        packaging=packaging,
    )


@dataclass(frozen=True)
class Asset:
    """One downloadable artifact of a build"""
    name: str
    uri: str
    size: Optional[int] = None
    digest: Optional[str] = None   # "sha256:<hex>" when the host publishes one
    content_type: Optional[str] = None

    @property
    def platform_tag(self) -> Optional[PlatformTag]:
        return parse_platform_tag(self.name)
