"""
InstallService - owns the install slot of one game.

Responsibilities:
- Report the installed version and whether the game can be launched
- Download a build into a staging area, unpack it and activate it atomically
- Guarantee at most one download per game at a time
- Launch the installed executable as a detached process

Install directory layout:
    <install_root>/<game_id>/install.json     committed InstallState
    <install_root>/<game_id>/builds/<id>/     unpacked active build
    <install_root>/<game_id>/.staging/<id>/   in-progress downloads
    <install_root>/<game_id>/bin/             manually placed build (no state file)

The only way a new build becomes visible is the os.replace() of install.json,
so can_launch() and get_current_version_async() never see a half-written
install.
"""

import asyncio
import json
import logging
import os
import re
import shutil
import ssl
import subprocess
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence
from urllib.parse import unquote, urlparse

import aiohttp
import certifi

from ..compat.matcher import CompatibilityPolicy, PlatformMatcher
from ..compat.ranker import select_best_asset
from ..download.cancellation import CancellationToken
from ..download.fetcher import DownloadResult, ProgressSink, download_to_file
from ..errors import (
    CorruptArtifactError,
    DownloadBusyError,
    DownloadCancelledError,
    DownloadDiskError,
    DownloadFailedError,
    InstallUnavailableError,
    LaunchFailedError,
    NoApplicableAssetError,
)
from ..models.asset import split_packaging
from ..models.build import Build
from ..models.game import Game
from ..models.install_state import InstallState
from ..models.platform import PlatformInfo
from ..settings import LauncherSettings
from ..stores.github import USER_AGENT
from ..utils.archives import extract_archive, find_executable, place_single_file
from ..utils.paths import get_game_dir, is_within

logger = logging.getLogger(__name__)

STATE_FILE = "install.json"
BUILDS_DIR = "builds"
STAGING_DIR = ".staging"
MANUAL_BIN_DIR = "bin"

VERSION_RE = re.compile(r'\bv?\d+(?:\.\d+)+(?:-[0-9A-Za-z.]+)?')


class InstallPhase(str, Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


class InstallService:
    """Service for installing and launching builds of one game."""

    def __init__(
        self,
        game: Game,
        install_root: str,
        settings: Optional[LauncherSettings] = None,
        platform: Optional[PlatformInfo] = None,
        matcher: Optional[PlatformMatcher] = None,
    ):
        """Initialize InstallService.

        Args:
            game: The game whose install slot this service owns
            install_root: Parent directory of all per-game install directories
            settings: Timeouts and chunk sizes; defaults when omitted
            platform: Machine to install for; detected when omitted
            matcher: Asset matcher; built from settings when omitted
        """
        self.game = game
        self.settings = settings or LauncherSettings()
        self.platform = platform or PlatformInfo.current()
        self.matcher = matcher or PlatformMatcher(CompatibilityPolicy.from_settings(self.settings))
        self.game_dir = get_game_dir(install_root, game.id)
        self.last_error: Optional[Exception] = None
        self._downloading = False

        self._remove_leftovers()
        self.phase = InstallPhase.INSTALLED if self.can_launch() else InstallPhase.IDLE
        logger.info(f"[Install] {game.id}: slot at {self.game_dir}, phase={self.phase.value}")

    # ------------------------------------------------------------------
    # Committed state
    # ------------------------------------------------------------------

    @property
    def state_path(self) -> str:
        return os.path.join(self.game_dir, STATE_FILE)

    def load_state(self) -> Optional[InstallState]:
        """Read the committed install record, or None if there is none."""
        try:
            with open(self.state_path, 'r', encoding='utf-8') as f:
                return InstallState.from_dict(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"[Install] {self.game.id}: unreadable {STATE_FILE}: {e}")
            return None

    def _write_state(self, state: InstallState) -> None:
        tmp_path = f"{self.state_path}.{uuid.uuid4().hex}.tmp"
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(state.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.state_path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    @property
    def executable_path(self) -> Optional[str]:
        """Where the launchable executable is expected, if anywhere."""
        state = self.load_state()
        if state is not None:
            return os.path.join(self.game_dir, state.executable)
        for name in self.game.executable_names(self.platform.os):
            candidate = os.path.join(self.game_dir, MANUAL_BIN_DIR, *name.split('/'))
            if os.path.isfile(candidate):
                return candidate
        return None

    def can_launch(self) -> bool:
        """True iff a launchable executable exists, whether or not its version is known."""
        path = self.executable_path
        return bool(path) and os.path.isfile(path)

    async def get_current_version_async(self) -> Optional[str]:
        """Installed version, or None when nothing is installed or it cannot be determined.

        A record whose executable has gone missing does not count as an
        install. Uses the install record first; falls back to asking the
        executable itself (game.version_args) for installs without a
        recorded version.
        """
        path = self.executable_path
        if not path or not os.path.isfile(path):
            return None

        state = self.load_state()
        if state is not None and state.version:
            return state.version
        if not self.game.version_args:
            return None
        return await self._probe_version(path)

    async def _probe_version(self, path: str) -> Optional[str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                path, *self.game.version_args,
                cwd=os.path.dirname(path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT
            )
        except OSError as e:
            logger.warning(f"[Install] {self.game.id}: could not run {path} for version: {e}")
            return None

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.settings.version_probe_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[Install] {self.game.id}: version probe timed out")
            proc.kill()
            await proc.wait()
            return None

        match = VERSION_RE.search(stdout.decode('utf-8', errors='ignore'))
        return match.group(0) if match else None

    # ------------------------------------------------------------------
    # Download / install
    # ------------------------------------------------------------------

    @property
    def is_downloading(self) -> bool:
        return self._downloading

    def _set_phase(self, phase: InstallPhase) -> None:
        if phase is not self.phase:
            logger.debug(f"[Install] {self.game.id}: {self.phase.value} -> {phase.value}")
        self.phase = phase

    def _resting_phase(self) -> InstallPhase:
        return InstallPhase.INSTALLED if self.can_launch() else InstallPhase.IDLE

    def _create_session(self) -> aiohttp.ClientSession:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        return aiohttp.ClientSession(connector=connector, headers={"User-Agent": USER_AGENT})

    async def install_build(
        self,
        build: Build,
        progress: Optional[ProgressSink] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> InstallState:
        """Install the best asset of a build for this platform.

        Raises:
            NoApplicableAssetError: If no asset of the build runs here
            DownloadBusyError, DownloadFailedError: As download_version
        """
        asset = select_best_asset(build, self.platform, self.matcher)
        if asset is None:
            raise NoApplicableAssetError(build.version)
        logger.info(f"[Install] {self.game.id}: selected {asset.name} for {build.version}")
        return await self.download_version(
            build.version, asset.uri, progress, cancel,
            expected_size=asset.size,
            expected_digest=asset.digest,
        )

    async def download_version(
        self,
        version: str,
        uri: str,
        progress: Optional[ProgressSink] = None,
        cancel: Optional[CancellationToken] = None,
        *,
        expected_size: Optional[int] = None,
        expected_digest: Optional[str] = None,
    ) -> InstallState:
        """Download, unpack and activate a build.

        Args:
            version: Version to record for the install
            uri: Artifact to download
            progress: Best-effort sink for a 0.0-1.0 download fraction
            cancel: Cancellation handle, polled between chunks
            expected_size: Byte size to verify, when known
            expected_digest: "sha256:<hex>" to verify, when known

        Returns:
            The newly committed InstallState

        Raises:
            DownloadBusyError: Another download for this game is running
            DownloadFailedError: Network, disk, corrupt artifact or cancellation.
                The previous install is left untouched.
        """
        # Checked and set before the first await: this is the single-flight guard
        if self._downloading:
            raise DownloadBusyError(self.game.id)
        self._downloading = True

        staging_dir = os.path.join(self.game_dir, STAGING_DIR, uuid.uuid4().hex)
        try:
            file_name = os.path.basename(unquote(urlparse(uri).path)) or "artifact"
            _, packaging = split_packaging(file_name)
            if packaging is None:
                raise CorruptArtifactError(f"Don't know how to install {file_name}")

            self._set_phase(InstallPhase.DOWNLOADING)
            logger.info(f"[Install] {self.game.id}: downloading {version} from {uri}")
            async with self._create_session() as session:
                result = await download_to_file(
                    session, uri, os.path.join(staging_dir, file_name),
                    chunk_size=self.settings.chunk_size,
                    timeout=self.settings.download_timeout,
                    progress=progress,
                    cancel=cancel,
                    expected_size=expected_size,
                    game_id=self.game.id,
                )
            self._verify(result, expected_size, expected_digest)
            if cancel is not None:
                cancel.raise_if_cancelled()

            self._set_phase(InstallPhase.INSTALLING)
            unpack_dir = os.path.join(staging_dir, "build")
            executable = await self._in_thread(
                self._unpack, result.path, packaging, file_name, unpack_dir)
            if cancel is not None:
                cancel.raise_if_cancelled()

            state = await self._in_thread(self._commit, version, uri, unpack_dir, executable)
            self.last_error = None
            self._set_phase(InstallPhase.INSTALLED)
            logger.info(f"[Install] {self.game.id}: installed {version}")
            return state

        except DownloadCancelledError as e:
            e.game_id = e.game_id or self.game.id
            logger.info(f"[Install] {self.game.id}: download of {version} cancelled")
            self.last_error = e
            self._set_phase(self._resting_phase())
            raise
        except DownloadFailedError as e:
            e.game_id = e.game_id or self.game.id
            self._fail(version, e)
            raise
        except OSError as e:
            error = DownloadDiskError(f"Install of {version} failed: {e}", game_id=self.game.id)
            self._fail(version, error)
            raise error from e
        except asyncio.CancelledError:
            # A commit that finished before the cancel landed stays committed
            self._set_phase(self._resting_phase())
            logger.info(f"[Install] {self.game.id}: download task cancelled, now {self.phase.value}")
            raise
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)
            self._downloading = False

    def _fail(self, version: str, error: DownloadFailedError) -> None:
        logger.error(f"[Install] {self.game.id}: install of {version} failed: {error}")
        self.last_error = error
        self._set_phase(InstallPhase.FAILED)
        self._set_phase(self._resting_phase())

    def _verify(self, result: DownloadResult, expected_size: Optional[int],
                expected_digest: Optional[str]) -> None:
        if expected_size is not None and result.size != expected_size:
            raise CorruptArtifactError(
                f"Downloaded {result.size} bytes, expected {expected_size}", game_id=self.game.id)
        if expected_digest:
            algorithm, _, value = expected_digest.partition(':')
            if algorithm.lower() != 'sha256' or not value:
                logger.warning(f"[Install] {self.game.id}: cannot verify digest {expected_digest}")
            elif value.lower() != result.sha256:
                raise CorruptArtifactError("Checksum mismatch for downloaded artifact", game_id=self.game.id)

    async def _in_thread(self, func, *args):
        """Run blocking install work in a worker thread.

        If the calling task is cancelled the thread is still waited for
        before CancelledError propagates, so staging cleanup and the
        busy flag never change underneath a running unpack or commit.
        """
        work = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.shield(work)
        except asyncio.CancelledError:
            await asyncio.wait([work])
            if not work.cancelled() and work.exception() is not None:
                logger.warning(f"[Install] {self.game.id}: install step failed after cancel: {work.exception()}")
            raise

    def _unpack(self, artifact: str, packaging, file_name: str, unpack_dir: str) -> str:
        """Unpack into unpack_dir; returns the executable path inside it."""
        if packaging.needs_extraction:
            extract_archive(artifact, packaging, unpack_dir)
        else:
            place_single_file(artifact, unpack_dir, file_name)

        names = self.game.executable_names(self.platform.os)
        executable = find_executable(unpack_dir, names)
        if executable is None and not packaging.needs_extraction:
            # A single-file build is the executable whatever it is called
            executable = os.path.join(unpack_dir, file_name)
        if executable is None:
            raise CorruptArtifactError(
                f"{file_name} does not contain {' or '.join(names) or 'a known executable'}",
                game_id=self.game.id)
        return executable

    def _commit(self, version: str, uri: str, unpack_dir: str, executable: str) -> InstallState:
        """Move the unpacked build into place and atomically switch install.json to it."""
        previous = self.load_state()
        build_dir = os.path.join(self.game_dir, BUILDS_DIR, uuid.uuid4().hex)
        os.makedirs(os.path.dirname(build_dir), exist_ok=True)
        shutil.move(unpack_dir, build_dir)

        final_executable = os.path.join(build_dir, os.path.relpath(executable, unpack_dir))
        state = InstallState(
            executable=os.path.relpath(final_executable, self.game_dir),
            version=version,
            asset_uri=uri,
            build_dir=os.path.relpath(build_dir, self.game_dir),
            installed_at=datetime.now(timezone.utc).isoformat(),
        )
        try:
            self._write_state(state)
        except OSError:
            shutil.rmtree(build_dir, ignore_errors=True)
            raise

        if previous is not None and previous.build_dir and previous.build_dir != state.build_dir:
            self._remove_build_dir(previous.build_dir)
        return state

    def _remove_build_dir(self, relative: str) -> None:
        path = os.path.join(self.game_dir, relative)
        builds_root = os.path.join(self.game_dir, BUILDS_DIR)
        if not is_within(path, builds_root) or os.path.realpath(path) == os.path.realpath(builds_root):
            logger.warning(f"[Install] {self.game.id}: refusing to delete {path}")
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.warning(f"[Install] {self.game.id}: could not remove old build {path}: {e}")

    def _remove_leftovers(self) -> None:
        """Delete staging areas and build dirs no install record points at (interrupted installs)."""
        shutil.rmtree(os.path.join(self.game_dir, STAGING_DIR), ignore_errors=True)
        builds_root = os.path.join(self.game_dir, BUILDS_DIR)
        if not os.path.isdir(builds_root):
            return
        state = self.load_state()
        active = os.path.normpath(state.build_dir) if state and state.build_dir else None
        for entry in os.listdir(builds_root):
            relative = os.path.join(BUILDS_DIR, entry)
            if os.path.normpath(relative) != active:
                logger.info(f"[Install] {self.game.id}: removing orphaned build {entry}")
                self._remove_build_dir(relative)

    # ------------------------------------------------------------------
    # Launch
    # ------------------------------------------------------------------

    def launch(self, args: Sequence[str] = ()) -> int:
        """Start the installed executable as an independent process.

        Returns:
            The pid of the started process

        Raises:
            InstallUnavailableError: can_launch() is False
            LaunchFailedError: The OS refused to start the process
        """
        if not self.can_launch():
            raise InstallUnavailableError(self.game.id)
        path = self.executable_path

        kwargs = {
            'cwd': os.path.dirname(path),
            'stdin': subprocess.DEVNULL,
            'stdout': subprocess.DEVNULL,
            'stderr': subprocess.DEVNULL,
            'close_fds': True,
        }
        if os.name == 'nt':
            kwargs['creationflags'] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs['start_new_session'] = True

        logger.info(f"[Install] Launching {self.game.name}: {path}")
        try:
            proc = subprocess.Popen([path, *args], **kwargs)
        except OSError as e:
            logger.error(f"[Install] Failed to launch {path}: {e}")
            raise LaunchFailedError(f"Could not start {self.game.name}: {e}", game_id=self.game.id) from e
        return proc.pid
