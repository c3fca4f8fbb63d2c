"""
Launcher settings.

Settings live in a small JSON file next to the rest of the launcher data.
A missing or unreadable file is not an error: defaults are used and the
problem is logged.
"""
import json
import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Union, get_args, get_origin, get_type_hints

from .utils.paths import get_default_install_root, get_settings_path

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.github.com"


@dataclass
class LauncherSettings:
    """User-tunable launcher configuration"""
    install_root: str = field(default_factory=get_default_install_root)
    github_token: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 15.0          # Release listing, per request
    download_timeout: float = 30.0         # Connect/read timeout while streaming artifacts
    chunk_size: int = 256 * 1024
    releases_per_page: int = 30
    max_release_pages: int = 1
    catalog_ttl: Optional[float] = None    # Seconds; None keeps catalog entries until invalidated
    allow_32bit_on_64bit: bool = True
    allow_generic_assets: bool = True      # Assets tagged with an OS but no architecture
    version_probe_timeout: float = 5.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LauncherSettings':
        """Build settings from a parsed JSON object.

        Unknown keys are ignored. A value of the wrong type (or a non-positive
        size or timeout) is logged and replaced by the default.
        """
        hints = get_type_hints(cls)
        unknown = set(data) - set(hints)
        if unknown:
            logger.warning(f"[Settings] Ignoring unknown keys: {', '.join(sorted(unknown))}")

        values = {}
        for name, value in data.items():
            if name not in hints:
                continue
            if not _accepts(hints[name], value) or (name in _POSITIVE_FIELDS and value <= 0):
                logger.warning(f"[Settings] Invalid value for {name}: {value!r}, using default")
                continue
            values[name] = value
        return cls(**values)


# Sizes and timeouts that only make sense above zero
_POSITIVE_FIELDS = frozenset({
    'request_timeout', 'download_timeout', 'chunk_size',
    'releases_per_page', 'max_release_pages', 'version_probe_timeout',
})


def _accepts(annotation, value) -> bool:
    if get_origin(annotation) is Union:
        return any(_accepts(arg, value) for arg in get_args(annotation))
    if annotation is type(None):
        return value is None
    # bool is an int subclass; true/false is never a number here
    if isinstance(value, bool):
        return annotation is bool
    if annotation is float:
        return isinstance(value, (int, float))
    return isinstance(value, annotation)


def load_settings(path: Optional[str] = None) -> LauncherSettings:
    """Load settings from disk, falling back to defaults.

    GITHUB_TOKEN from the environment is used when the file does not set a token.
    """
    path = path or get_settings_path()
    settings = LauncherSettings()
    try:
        if os.path.exists(path):
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("settings file must contain a JSON object")
            settings = LauncherSettings.from_dict(data)
            logger.info(f"[Settings] Loaded settings from {path}")
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"[Settings] Error loading {path}, using defaults: {e}")
        settings = LauncherSettings()

    if not settings.github_token:
        settings.github_token = os.environ.get("GITHUB_TOKEN") or None
    return settings


def save_settings(settings: LauncherSettings, path: Optional[str] = None) -> None:
    """Write settings atomically (temp file + replace)."""
    path = path or get_settings_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp_path = f"{path}.{uuid.uuid4().hex}.tmp"
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(settings.to_dict(), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError):
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    logger.info(f"[Settings] Saved settings to {path}")
