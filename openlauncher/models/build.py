"""Published builds (releases) of a game."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from .asset import Asset


@dataclass(frozen=True)
class Build:
    """One release as published by the release source.

    published_at is None for builds that were never published (drafts).
    """
    version: str
    published_at: Optional[datetime] = None
    is_prerelease: bool = False
    assets: Tuple[Asset, ...] = field(default_factory=tuple)

    @property
    def is_release(self) -> bool:
        return not self.is_prerelease
