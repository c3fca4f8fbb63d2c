"""
Games the launcher knows about.

Static catalog; games are immutable once loaded.
"""
from typing import Dict, Optional, Tuple

from .models.game import Game
from .models.platform import OsFamily

OPENRCT2 = Game(
    id="openrct2",
    name="OpenRCT2",
    repository="OpenRCT2/OpenRCT2",
    executables={
        OsFamily.WINDOWS: ("openrct2.exe",),
        OsFamily.LINUX: ("OpenRCT2.AppImage", "openrct2"),
        OsFamily.MACOS: ("OpenRCT2.app/Contents/MacOS/OpenRCT2",),
    },
    version_args=("--version",),
)

OPENLOCO = Game(
    id="openloco",
    name="OpenLoco",
    repository="OpenLoco/OpenLoco",
    executables={
        OsFamily.WINDOWS: ("openloco.exe",),
        OsFamily.LINUX: ("openloco",),
        OsFamily.MACOS: ("OpenLoco.app/Contents/MacOS/OpenLoco", "openloco"),
    },
    version_args=("--version",),
)

KNOWN_GAMES: Tuple[Game, ...] = (OPENRCT2, OPENLOCO)

_BY_ID: Dict[str, Game] = {game.id: game for game in KNOWN_GAMES}


def get_game(game_id: str) -> Optional[Game]:
    """Look a game up by id (case-insensitive)."""
    return _BY_ID.get(game_id.lower())
