"""
Service tag snapshots: the published document and how to get it.
"""

from .models import ServiceTagSnapshot, TagEntry
from .fetcher import fetch_snapshot, load_snapshot_file, resolve_download_url

__all__ = [
    "ServiceTagSnapshot",
    "TagEntry",
    "fetch_snapshot",
    "load_snapshot_file",
    "resolve_download_url",
]
