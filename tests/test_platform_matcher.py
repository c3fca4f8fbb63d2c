"""
Tests for PlatformMatcher and CompatibilityPolicy.
"""
import pytest

from openlauncher.compat.matcher import ArchMatch, CompatibilityPolicy, PlatformMatcher
from openlauncher.models import Arch, OsFamily, PlatformInfo, is_applicable_for_current_platform
from openlauncher.settings import LauncherSettings

from conftest import make_asset


@pytest.fixture
def matcher():
    return PlatformMatcher(CompatibilityPolicy.default())


def test_exact_match(matcher, win_x64):
    match = matcher.match(make_asset("game-windows-x64.zip"), win_x64)
    assert match is not None
    assert match.arch_match is ArchMatch.EXACT


def test_other_os_never_applies(matcher, win_x64):
    assert not matcher.is_applicable(make_asset("game-linux-x64.zip"), win_x64)
    assert not matcher.is_applicable(make_asset("game-macos-universal.zip"), win_x64)


def test_untagged_asset_never_applies(matcher, win_x64):
    assert not matcher.is_applicable(make_asset("game-1.0.zip"), win_x64)
    assert not matcher.is_applicable(make_asset("checksums.txt"), win_x64)


def test_unknown_packaging_does_not_apply(matcher, win_x64):
    assert not matcher.is_applicable(make_asset("game-windows-x64.exe"), win_x64)
    assert not matcher.is_applicable(make_asset("game-windows-x64.msi"), win_x64)


def test_appimage_needs_platform_support(matcher, linux_x64):
    appimage = make_asset("game-linux-x86_64.AppImage")
    assert matcher.is_applicable(appimage, linux_x64)
    archives_only = PlatformInfo(os=OsFamily.LINUX, arch=Arch.X86_64)
    assert not matcher.is_applicable(appimage, archives_only)


def test_32bit_alias_on_64bit_windows(win_x64):
    asset = make_asset("game-windows-x86.zip")
    allowed = PlatformMatcher(CompatibilityPolicy.default(allow_32bit_on_64bit=True))
    refused = PlatformMatcher(CompatibilityPolicy.default(allow_32bit_on_64bit=False))
    assert allowed.match(asset, win_x64).arch_match is ArchMatch.ALIAS
    assert not refused.is_applicable(asset, win_x64)


def test_64bit_build_never_runs_on_32bit(matcher):
    win_x86 = PlatformInfo(os=OsFamily.WINDOWS, arch=Arch.X86)
    assert not matcher.is_applicable(make_asset("game-windows-x64.zip"), win_x86)


def test_macos_aliases(matcher, mac_arm64):
    assert matcher.match(make_asset("game-macos-universal.zip"), mac_arm64).arch_match is ArchMatch.ALIAS
    assert matcher.match(make_asset("game-macos-x64.zip"), mac_arm64).arch_match is ArchMatch.ALIAS
    mac_x64 = PlatformInfo(os=OsFamily.MACOS, arch=Arch.X86_64)
    assert not matcher.is_applicable(make_asset("game-macos-arm64.zip"), mac_x64)


def test_generic_asset_follows_policy(win_x64):
    asset = make_asset("game-windows.zip")
    assert PlatformMatcher(CompatibilityPolicy.default()).match(asset, win_x64).arch_match is ArchMatch.GENERIC
    strict = PlatformMatcher(CompatibilityPolicy.default(allow_generic=False))
    assert not strict.is_applicable(asset, win_x64)


def test_unknown_machine_matches_nothing(matcher):
    unknown = PlatformInfo(os=None, arch=None)
    assert not matcher.is_applicable(make_asset("game-windows-x64.zip"), unknown)
    assert not matcher.is_applicable(make_asset("game-windows.zip"), unknown)


def test_policy_from_settings():
    settings = LauncherSettings(install_root="/tmp/unused", allow_32bit_on_64bit=False,
                                allow_generic_assets=False)
    policy = CompatibilityPolicy.from_settings(settings)
    assert Arch.X86 not in policy.compatible_archs(OsFamily.WINDOWS, Arch.X86_64)
    assert policy.allow_generic is False


def test_filter_keeps_input_order(matcher, win_x64):
    assets = [
        make_asset("game-windows-x86.zip"),
        make_asset("game-linux-x64.zip"),
        make_asset("game-windows-x64.zip"),
    ]
    assert [a.name for a in matcher.filter(assets, win_x64)] == [
        "game-windows-x86.zip", "game-windows-x64.zip"]


def test_is_applicable_for_current_platform_uses_matcher(win_x64):
    assert is_applicable_for_current_platform(make_asset("game-windows-x64.zip"), win_x64)
    assert not is_applicable_for_current_platform(make_asset("game-linux-x64.zip"), win_x64)
