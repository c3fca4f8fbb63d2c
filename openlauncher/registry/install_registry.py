"""
Install registry - maps game ids to their InstallService.

Services are created on first lookup and live as long as the registry.
The registry owns every instance; there is no module-level singleton.
"""
import logging
from typing import Dict, Optional

from ..compat.matcher import CompatibilityPolicy, PlatformMatcher
from ..models.game import Game
from ..models.platform import PlatformInfo
from ..services.install_service import InstallService
from ..settings import LauncherSettings

logger = logging.getLogger(__name__)


class InstallRegistry:
    """Lazily creates and owns one InstallService per game."""

    def __init__(
        self,
        settings: Optional[LauncherSettings] = None,
        platform: Optional[PlatformInfo] = None,
        matcher: Optional[PlatformMatcher] = None,
    ):
        self.settings = settings or LauncherSettings()
        self.platform = platform or PlatformInfo.current()
        self.matcher = matcher or PlatformMatcher(CompatibilityPolicy.from_settings(self.settings))
        self._services: Dict[str, InstallService] = {}

    def get(self, game: Game) -> InstallService:
        """Get the game's InstallService, creating it on first access."""
        service = self._services.get(game.id)
        if service is None:
            service = InstallService(
                game,
                self.settings.install_root,
                settings=self.settings,
                platform=self.platform,
                matcher=self.matcher,
            )
            self._services[game.id] = service
            logger.info(f"[Registry] Created install service for {game.id}")
        return service

    def __contains__(self, game_id: str) -> bool:
        return game_id in self._services

    @property
    def services(self) -> Dict[str, InstallService]:
        """Services created so far, by game id."""
        return dict(self._services)
