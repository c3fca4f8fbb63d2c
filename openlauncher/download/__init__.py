"""Artifact download helpers: streaming fetch and cancellation."""

from .cancellation import CancellationToken
from .fetcher import DownloadResult, ProgressSink, download_to_file, report_progress

__all__ = ['CancellationToken', 'DownloadResult', 'ProgressSink', 'download_to_file', 'report_progress']
