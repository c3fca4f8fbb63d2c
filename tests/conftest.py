from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from openlauncher.models import Arch, Asset, Build, Game, OsFamily, Packaging, PlatformInfo  # noqa: E402
from openlauncher.models.platform import ARCHIVE_PACKAGING  # noqa: E402


def make_asset(name: str, size=None, digest=None) -> Asset:
    return Asset(name=name, uri=f"https://example.invalid/download/{name}", size=size, digest=digest)


def make_build(version: str, *names: str, prerelease: bool = False) -> Build:
    return Build(version=version, is_prerelease=prerelease, assets=tuple(make_asset(n) for n in names))


@pytest.fixture
def win_x64():
    return PlatformInfo(os=OsFamily.WINDOWS, arch=Arch.X86_64)


@pytest.fixture
def linux_x64():
    return PlatformInfo(
        os=OsFamily.LINUX,
        arch=Arch.X86_64,
        packaging=frozenset(ARCHIVE_PACKAGING | {Packaging.APPIMAGE}),
    )


@pytest.fixture
def mac_arm64():
    return PlatformInfo(os=OsFamily.MACOS, arch=Arch.ARM64)


@pytest.fixture
def game():
    """A game whose executable is called testgame on every OS."""
    return Game(
        id="testgame",
        name="Test Game",
        repository="example/testgame",
        executables={
            OsFamily.WINDOWS: ("testgame.exe",),
            OsFamily.LINUX: ("testgame",),
            OsFamily.MACOS: ("testgame",),
        },
    )
