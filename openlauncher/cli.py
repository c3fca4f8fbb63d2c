"""
Command line front-end for OpenLauncher.

Usage:
    openlauncher games
    openlauncher builds openrct2 [--prerelease]
    openlauncher install openrct2 [VERSION] [--prerelease]
    openlauncher launch openrct2
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from . import __version__
from .compat.matcher import CompatibilityPolicy, PlatformMatcher
from .compat.ranker import select_best_asset
from .download.cancellation import CancellationToken
from .errors import LauncherError
from .games import KNOWN_GAMES, get_game
from .models.game import Game
from .models.platform import PlatformInfo
from .registry.install_registry import InstallRegistry
from .services.build_catalog import BuildCatalog
from .settings import load_settings
from .stores.github import GitHubReleaseSource
from .utils.log_setup import setup_logging

logger = logging.getLogger(__name__)


class Launcher:
    """Wires settings, catalog and install registry together for one CLI run"""

    def __init__(self, settings_path: Optional[str] = None):
        self.settings = load_settings(settings_path)
        self.platform = PlatformInfo.current()
        self.matcher = PlatformMatcher(CompatibilityPolicy.from_settings(self.settings))
        self.source = GitHubReleaseSource.from_settings(self.settings)
        self.catalog = BuildCatalog(self.source, ttl=self.settings.catalog_ttl)
        self.installs = InstallRegistry(self.settings, self.platform, self.matcher)

    async def close(self) -> None:
        await self.source.close()


def _require_game(game_id: str) -> Game:
    game = get_game(game_id)
    if game is None:
        known = ', '.join(g.id for g in KNOWN_GAMES)
        raise LauncherError(f"Unknown game '{game_id}' (known: {known})")
    return game


async def cmd_games(launcher: Launcher, args) -> int:
    for game in KNOWN_GAMES:
        service = launcher.installs.get(game)
        version = await service.get_current_version_async()
        if version is None and service.can_launch():
            version = "(unknown)"
        print(f"{game.id:<12} {game.name:<12} {version or '-'}")
    return 0


async def cmd_builds(launcher: Launcher, args) -> int:
    game = _require_game(args.game)
    builds = await launcher.catalog.get_applicable_builds(
        game, args.prerelease, launcher.platform, launcher.matcher)
    if not builds:
        print(f"No builds of {game.name} for {launcher.platform.describe()}")
        return 0
    for build in builds:
        asset = select_best_asset(build, launcher.platform, launcher.matcher)
        published = build.published_at.date().isoformat() if build.published_at else "unpublished"
        kind = "release" if build.is_release else "prerelease"
        print(f"{build.version:<24} {kind:<10} {published:<12} {asset.name}")
    return 0


def _print_progress(fraction: float) -> None:
    sys.stderr.write(f"\rDownloading {fraction * 100:5.1f}%")
    sys.stderr.flush()


async def cmd_install(launcher: Launcher, args) -> int:
    game = _require_game(args.game)
    builds = await launcher.catalog.get_applicable_builds(
        game, args.prerelease, launcher.platform, launcher.matcher)
    if args.build_version:
        builds = [b for b in builds if b.version == args.build_version]
    if not builds:
        raise LauncherError(f"No installable build of {game.name} found")
    build = builds[0]

    cancel = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # Windows: Ctrl-C cancels the task instead

    service = launcher.installs.get(game)
    try:
        state = await service.install_build(build, progress=_print_progress, cancel=cancel)
    finally:
        sys.stderr.write("\n")
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    print(f"Installed {game.name} {state.version}")
    return 0


async def cmd_launch(launcher: Launcher, args) -> int:
    game = _require_game(args.game)
    pid = launcher.installs.get(game).launch(args.args)
    print(f"Started {game.name} (pid {pid})")
    return 0


COMMANDS = {
    'games': cmd_games,
    'builds': cmd_builds,
    'install': cmd_install,
    'launch': cmd_launch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="openlauncher", description="Download and launch game builds")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", help="Path to settings.json")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("games", help="List known games and what is installed")

    builds = sub.add_parser("builds", help="List builds available for this machine")
    builds.add_argument("game")
    builds.add_argument("--prerelease", action="store_true", help="Include prereleases")

    install = sub.add_parser("install", help="Download and install a build")
    install.add_argument("game")
    install.add_argument("build_version", nargs="?", metavar="VERSION",
                         help="Version to install (default: newest)")
    install.add_argument("--prerelease", action="store_true", help="Consider prereleases")

    launch = sub.add_parser("launch", help="Launch the installed build")
    launch.add_argument("game")
    launch.add_argument("args", nargs=argparse.REMAINDER, help="Arguments passed to the game")
    return parser


async def _run(args) -> int:
    launcher = Launcher(args.settings)
    try:
        return await COMMANDS[args.command](launcher, args)
    finally:
        await launcher.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        return asyncio.run(_run(args))
    except LauncherError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
