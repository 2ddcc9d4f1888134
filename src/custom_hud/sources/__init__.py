"""Data sources feeding the status line."""

from .credentials import CredentialStore, RefreshError
from .transcript import TranscriptScanner, scan_transcript
from .usage import UsageClient
from .version import VersionClient

__all__ = [
    "CredentialStore",
    "RefreshError",
    "TranscriptScanner",
    "UsageClient",
    "VersionClient",
    "scan_transcript",
]
