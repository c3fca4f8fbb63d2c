"""OpenLauncher file path constants and utilities."""

import os


def get_data_dir() -> str:
    """Get the launcher data directory.

    Honours OPENLAUNCHER_DATA_DIR so tests and portable setups can relocate it.
    """
    override = os.environ.get("OPENLAUNCHER_DATA_DIR")
    if override:
        return os.path.expanduser(override)
    return os.path.expanduser("~/.local/share/openlauncher")


def get_settings_path() -> str:
    return os.path.join(get_data_dir(), "settings.json")


def get_default_install_root() -> str:
    """Default parent directory for per-game install directories"""
    return os.path.join(get_data_dir(), "games")


def get_game_dir(install_root: str, game_id: str) -> str:
    """Get the exclusive install directory for a game.

    Args:
        install_root: Parent directory holding all game installs
        game_id: Stable game identifier

    Returns:
        Full path to the game's install directory
    """
    return os.path.join(install_root, game_id)


def is_within(path: str, root: str) -> bool:
    """Check that path resolves to root or somewhere below it."""
    real_root = os.path.realpath(root)
    real_path = os.path.realpath(path)
    return real_path == real_root or real_path.startswith(real_root + os.sep)
