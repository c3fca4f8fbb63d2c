"""
Streaming artifact download.

Streams one URL to a file in chunks, hashing as it goes, reporting progress
and polling a cancellation token between chunks.
"""
import asyncio
import hashlib
import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional

import aiohttp

from ..errors import DownloadDiskError, DownloadNetworkError
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

# Receives a fraction in [0.0, 1.0]. Must return quickly and never block.
ProgressSink = Callable[[float], None]


@dataclass
class DownloadResult:
    path: str
    size: int
    sha256: str


def report_progress(sink: Optional[ProgressSink], fraction: float) -> None:
    """Deliver progress best-effort; a failing sink never affects the download."""
    if sink is None:
        return
    try:
        sink(max(0.0, min(fraction, 1.0)))
    except Exception as e:
        logger.debug(f"[Download] Progress sink raised, ignoring: {e}")


async def download_to_file(
    session: aiohttp.ClientSession,
    uri: str,
    dest: str,
    *,
    chunk_size: int = 256 * 1024,
    timeout: float = 30.0,
    progress: Optional[ProgressSink] = None,
    cancel: Optional[CancellationToken] = None,
    expected_size: Optional[int] = None,
    game_id: Optional[str] = None,
) -> DownloadResult:
    """Stream uri into dest.

    Raises:
        DownloadNetworkError: Connection failure, timeout or non-200 status
        DownloadDiskError: dest could not be written
        DownloadCancelledError: cancel was triggered between chunks
    """
    digest = hashlib.sha256()
    downloaded = 0
    client_timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout)

    try:
        async with session.get(uri, timeout=client_timeout) as resp:
            if resp.status != 200:
                raise DownloadNetworkError(f"Server returned HTTP {resp.status} for {uri}", game_id=game_id)
            total = expected_size or resp.content_length or 0
            logger.info(f"[Download] Streaming {uri} ({total or 'unknown'} bytes)")
            report_progress(progress, 0.0)

            os.makedirs(os.path.dirname(dest), exist_ok=True)
            with open(dest, 'wb') as f:
                async for chunk in resp.content.iter_chunked(chunk_size):
                    if cancel is not None:
                        cancel.raise_if_cancelled()
                    f.write(chunk)
                    digest.update(chunk)
                    downloaded += len(chunk)
                    if total:
                        report_progress(progress, downloaded / total)
    except asyncio.TimeoutError as e:
        raise DownloadNetworkError(f"Timed out downloading {uri}", game_id=game_id) from e
    except aiohttp.ClientError as e:
        raise DownloadNetworkError(f"Download of {uri} failed: {e}", game_id=game_id) from e
    except OSError as e:
        raise DownloadDiskError(f"Could not write {dest}: {e}", game_id=game_id) from e

    if cancel is not None:
        cancel.raise_if_cancelled()
    report_progress(progress, 1.0)
    return DownloadResult(path=dest, size=downloaded, sha256=digest.hexdigest())
