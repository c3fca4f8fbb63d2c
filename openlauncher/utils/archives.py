"""
Archive extraction and executable lookup for downloaded builds.

Everything here is blocking; callers run it in a worker thread.
"""
import logging
import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path
from typing import Iterable, Optional

from ..errors import CorruptArtifactError
from ..models.platform import Packaging
from .paths import is_within

logger = logging.getLogger(__name__)

_TAR_MODES = {
    Packaging.TAR: "r:",
    Packaging.TAR_GZ: "r:gz",
    Packaging.TAR_XZ: "r:xz",
    Packaging.TAR_BZ2: "r:bz2",
}


def _check_member_name(name: str, dest_dir: str) -> None:
    target = os.path.join(dest_dir, name)
    if os.path.isabs(name) or not is_within(target, dest_dir):
        raise CorruptArtifactError(f"Archive member escapes the install directory: {name}")


def _extract_zip(archive: str, dest_dir: str) -> None:
    with zipfile.ZipFile(archive, "r") as zf:
        infos = zf.infolist()
        for info in infos:
            _check_member_name(info.filename, dest_dir)
        zf.extractall(dest_dir)
        # zipfile drops unix permissions; restore the executable bits
        for info in infos:
            mode = (info.external_attr >> 16) & 0o777
            if mode and not info.is_dir():
                os.chmod(os.path.join(dest_dir, info.filename), mode)


def _extract_tar(archive: str, mode: str, dest_dir: str) -> None:
    with tarfile.open(archive, mode) as tar:
        for member in tar.getmembers():
            _check_member_name(member.name, dest_dir)
            if member.issym() or member.islnk():
                link_target = os.path.join(dest_dir, os.path.dirname(member.name), member.linkname)
                if os.path.isabs(member.linkname) or not is_within(link_target, dest_dir):
                    raise CorruptArtifactError(f"Archive link escapes the install directory: {member.name}")
        if hasattr(tarfile, 'data_filter'):
            tar.extractall(dest_dir, filter='data')
        else:
            tar.extractall(dest_dir)


def extract_archive(archive: str, packaging: Packaging, dest_dir: str) -> None:
    """Unpack a downloaded archive into dest_dir.

    Raises:
        CorruptArtifactError: Unreadable archive or members escaping dest_dir
        OSError: Disk errors while writing
    """
    os.makedirs(dest_dir, exist_ok=True)
    logger.info(f"[Archive] Extracting {os.path.basename(archive)} ({packaging.value})")
    try:
        if packaging is Packaging.ZIP:
            _extract_zip(archive, dest_dir)
        elif packaging in _TAR_MODES:
            _extract_tar(archive, _TAR_MODES[packaging], dest_dir)
        else:
            raise CorruptArtifactError(f"{packaging.value} is not an archive format")
    except zipfile.BadZipFile as e:
        raise CorruptArtifactError(f"Corrupt zip archive: {e}") from e
    except tarfile.TarError as e:
        raise CorruptArtifactError(f"Corrupt tar archive: {e}") from e
    except EOFError as e:
        raise CorruptArtifactError("Archive is truncated") from e


def place_single_file(artifact: str, dest_dir: str, file_name: str) -> str:
    """Move a single-file artifact (e.g. an AppImage) into dest_dir and mark it executable."""
    os.makedirs(dest_dir, exist_ok=True)
    target = os.path.join(dest_dir, file_name)
    shutil.move(artifact, target)
    mode = os.stat(target).st_mode
    os.chmod(target, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return target


def find_executable(root: str, names: Iterable[str]) -> Optional[str]:
    """Find the first of names under root.

    Names may contain '/' (e.g. "OpenRCT2.app/Contents/MacOS/OpenRCT2") and are
    matched against the tail of the path. For each name the shallowest match
    wins, then the lexically smallest path.
    """
    root_path = Path(root)
    for name in names:
        parts = tuple(p.lower() for p in name.split('/'))
        candidates = [
            path for path in root_path.rglob('*')
            if path.is_file() and tuple(p.lower() for p in path.parts[-len(parts):]) == parts
        ]
        if candidates:
            best = min(candidates, key=lambda p: (len(p.relative_to(root_path).parts), str(p)))
            return str(best)
    return None
