"""
Base ReleaseSource class defining the interface for build listings.

A release source turns a Game into the list of Builds published for it.
Implementations raise CatalogFetchError subclasses on failure and never
return partial results.
"""
from abc import ABC, abstractmethod
from typing import List

from ..models.build import Build
from ..models.game import Game


class ReleaseSource(ABC):
    """Abstract base class for remote release listings."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return the source identifier (e.g., 'github')"""
        pass

    @abstractmethod
    async def fetch_builds(self, game: Game, include_prerelease: bool) -> List[Build]:
        """
        Fetch the builds published for a game.

        Args:
            game: The game whose repository to list.
            include_prerelease: When False the source may leave prereleases out.

        Returns:
            Builds newest first, in the order the remote source lists them.

        Raises:
            CatalogFetchError: On timeout, auth, network or malformed responses.
        """
        pass

    async def close(self) -> None:
        """Release any held connections. Default implementation does nothing."""
        return None
