"""
Platform vocabulary shared by asset tags and the running machine.
"""
import platform as _platform
import sys
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional


class OsFamily(str, Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"


class Arch(str, Enum):
    X86 = "x86"
    X86_64 = "x86_64"
    ARM64 = "arm64"
    UNIVERSAL = "universal"   # macOS fat binary


class Packaging(str, Enum):
    ZIP = "zip"
    TAR = "tar"
    TAR_GZ = "tar.gz"
    TAR_XZ = "tar.xz"
    TAR_BZ2 = "tar.bz2"
    APPIMAGE = "appimage"

    @property
    def needs_extraction(self) -> bool:
        return self is not Packaging.APPIMAGE


ARCHIVE_PACKAGING = frozenset({Packaging.ZIP, Packaging.TAR, Packaging.TAR_GZ, Packaging.TAR_XZ, Packaging.TAR_BZ2})

_MACHINE_ARCH = {
    'x86_64': Arch.X86_64,
    'amd64': Arch.X86_64,
    'x64': Arch.X86_64,
    'i386': Arch.X86,
    'i686': Arch.X86,
    'x86': Arch.X86,
    'arm64': Arch.ARM64,
    'aarch64': Arch.ARM64,
}


def detect_os_family() -> Optional[OsFamily]:
    if sys.platform.startswith('win'):
        return OsFamily.WINDOWS
    if sys.platform.startswith('linux'):
        return OsFamily.LINUX
    if sys.platform == 'darwin':
        return OsFamily.MACOS
    return None


def detect_arch() -> Optional[Arch]:
    return _MACHINE_ARCH.get(_platform.machine().lower())


@dataclass(frozen=True)
class PlatformInfo:
    """Description of the machine we are installing for.

    os/arch are None when the running platform is not one we know about,
    in which case nothing tagged for a specific OS/arch will match.
    """
    os: Optional[OsFamily]
    arch: Optional[Arch]
    packaging: FrozenSet[Packaging] = ARCHIVE_PACKAGING

    @classmethod
    def current(cls) -> 'PlatformInfo':
        os_family = detect_os_family()
        packaging = set(ARCHIVE_PACKAGING)
        if os_family is OsFamily.LINUX:
            packaging.add(Packaging.APPIMAGE)
        return cls(os=os_family, arch=detect_arch(), packaging=frozenset(packaging))

    def describe(self) -> str:
        os_name = self.os.value if self.os else "unknown-os"
        arch_name = self.arch.value if self.arch else "unknown-arch"
        return f"{os_name}-{arch_name}"
