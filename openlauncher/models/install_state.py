"""Committed install record for one game."""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class InstallState:
    """What is installed in a game's install slot.

    version is None when the install exists but its version is unknown.
    """
    executable: str
    version: Optional[str] = None
    asset_uri: Optional[str] = None
    build_dir: Optional[str] = None
    installed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InstallState':
        executable = data.get('executable')
        if not isinstance(executable, str) or not executable:
            raise ValueError("install state has no executable")
        return cls(
            executable=executable,
            version=data.get('version') or None,
            asset_uri=data.get('asset_uri'),
            build_dir=data.get('build_dir'),
            installed_at=data.get('installed_at'),
        )
