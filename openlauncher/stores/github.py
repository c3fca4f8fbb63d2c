"""
GitHub releases connector.

Lists the releases of a game's repository through the GitHub REST API:
GET {api_base}/repos/{owner}/{repo}/releases?per_page=N&page=P

Releases are passed through in the order GitHub returns them (newest
first); we never re-sort, because tag names are not reliably sortable.
"""
import asyncio
import logging
import ssl
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp
import certifi

from ..errors import (
    CatalogAuthError,
    CatalogNetworkError,
    CatalogResponseError,
    CatalogTimeoutError,
)
from ..models.asset import Asset
from ..models.build import Build
from ..models.game import Game
from ..settings import DEFAULT_API_BASE_URL
from .base import ReleaseSource

logger = logging.getLogger(__name__)

USER_AGENT = "OpenLauncher"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse GitHub's ISO-8601 timestamps ("2023-10-01T12:00:00Z")."""
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"timestamp is not a string: {value!r}")
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def parse_asset(data: Dict[str, Any]) -> Optional[Asset]:
    """Create an Asset from a release asset payload.

    Returns None if the asset lacks a name or download URL.
    """
    if not isinstance(data, dict):
        return None
    name = data.get('name')
    uri = data.get('browser_download_url')
    if not name or not uri:
        return None
    size = data.get('size')
    return Asset(
        name=str(name),
        uri=str(uri),
        size=int(size) if isinstance(size, int) and size >= 0 else None,
        digest=data.get('digest') or None,
        content_type=data.get('content_type') or None,
    )


def parse_release(data: Dict[str, Any]) -> Build:
    """Create a Build from a release payload.

    Drafts have no publish date and are reported as prereleases.

    Raises:
        ValueError: If the payload is not a release object.
    """
    if not isinstance(data, dict):
        raise ValueError("release entry is not an object")
    version = data.get('tag_name') or data.get('name')
    if not isinstance(version, str) or not version:
        raise ValueError("release has no tag_name")

    raw_assets = data.get('assets') or []
    if not isinstance(raw_assets, list):
        raise ValueError(f"assets of {version} is not a list")
    assets = []
    for raw in raw_assets:
        asset = parse_asset(raw)
        if asset is None:
            logger.warning(f"[GitHub] Skipping incomplete asset in {version}: {raw!r:.200}")
            continue
        assets.append(asset)

    is_draft = bool(data.get('draft'))
    return Build(
        version=version,
        published_at=parse_timestamp(data.get('published_at')),
        is_prerelease=bool(data.get('prerelease')) or is_draft,
        assets=tuple(assets),
    )


class GitHubReleaseSource(ReleaseSource):
    """Release source backed by the GitHub releases API"""

    def __init__(
        self,
        api_base_url: str = DEFAULT_API_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 15.0,
        per_page: int = 30,
        max_pages: int = 1,
    ):
        self.api_base_url = api_base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.per_page = per_page
        self.max_pages = max(1, max_pages)
        self.session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_settings(cls, settings) -> 'GitHubReleaseSource':
        return cls(
            api_base_url=settings.api_base_url,
            token=settings.github_token,
            timeout=settings.request_timeout,
            per_page=settings.releases_per_page,
            max_pages=settings.max_release_pages,
        )

    @property
    def source_name(self) -> str:
        return 'github'

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            connector = aiohttp.TCPConnector(ssl=ssl_context, limit_per_host=4)
            headers = {
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
            }
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self.session = aiohttp.ClientSession(connector=connector, headers=headers)
        return self.session

    async def close(self) -> None:
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None

    async def _fetch_page(self, game: Game, page: int) -> List[Any]:
        url = f"{self.api_base_url}/repos/{game.owner}/{game.repo_name}/releases"
        params = {'per_page': str(self.per_page), 'page': str(page)}
        session = await self._get_session()

        try:
            async with session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                if resp.status in (401, 403):
                    if resp.headers.get('X-RateLimit-Remaining') == '0':
                        message = f"GitHub rate limit exhausted while listing {game.repository}"
                    else:
                        message = f"GitHub refused access to {game.repository} (HTTP {resp.status})"
                    raise CatalogAuthError(message, game_id=game.id, status=resp.status)
                if resp.status != 200:
                    raise CatalogNetworkError(
                        f"GitHub returned HTTP {resp.status} for {game.repository}",
                        game_id=game.id, status=resp.status)
                payload = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise CatalogTimeoutError(
                f"Timed out listing builds for {game.name}", game_id=game.id) from e
        except aiohttp.ClientError as e:
            raise CatalogNetworkError(
                f"Could not reach GitHub for {game.name}: {e}", game_id=game.id) from e
        except ValueError as e:
            raise CatalogResponseError(
                f"GitHub sent invalid JSON for {game.repository}", game_id=game.id) from e

        if not isinstance(payload, list):
            raise CatalogResponseError(
                f"Unexpected release listing for {game.repository}", game_id=game.id)
        return payload

    async def fetch_builds(self, game: Game, include_prerelease: bool) -> List[Build]:
        builds: List[Build] = []
        for page in range(1, self.max_pages + 1):
            entries = await self._fetch_page(game, page)
            try:
                builds.extend(parse_release(entry) for entry in entries)
            except ValueError as e:
                raise CatalogResponseError(
                    f"Malformed release data for {game.repository}: {e}", game_id=game.id) from e
            if len(entries) < self.per_page:
                break

        if not include_prerelease:
            builds = [b for b in builds if b.is_release]
        logger.info(f"[GitHub] {game.repository}: {len(builds)} builds (prerelease={include_prerelease})")
        return builds
