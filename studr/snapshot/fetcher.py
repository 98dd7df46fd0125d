"""
Download of the published service tag document.

The provider does not publish a stable URL for the JSON file. Each cloud has
a download confirmation page whose body links to the current file, so the
link is scraped from that page first and then fetched.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

import requests

from .. import __version__
from ..clouds import CloudEnvironment, endpoints_for
from ..errors import SnapshotUnavailable
from .models import ServiceTagSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DOCUMENT_LINK_PATTERN = re.compile(r"https://[^\s\"'<>]*/ServiceTags_[^\s\"'<>]*")
HEADERS = {"User-Agent": f"studr/{__version__}"}


def _get(session: Optional[requests.Session], url: str, timeout: int) -> requests.Response:
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as exc:
        raise SnapshotUnavailable(f"Timed out fetching {url}") from exc
    except requests.exceptions.RequestException as exc:
        raise SnapshotUnavailable(f"Failed to fetch {url}: {exc}") from exc
    return response


def resolve_download_url(
    cloud: Union[str, CloudEnvironment],
    session: Optional[requests.Session] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> str:
    """
    Find the service tag document link on the cloud's confirmation page.

    Args:
        cloud: Cloud environment
        session: Optional requests session to reuse
        timeout: Request timeout in seconds

    Returns:
        URL of the JSON document

    Raises:
        SnapshotUnavailable: If the page cannot be fetched or holds no link
    """
    page_url = endpoints_for(cloud).confirmation_url
    response = _get(session, page_url, timeout)

    match = DOCUMENT_LINK_PATTERN.search(response.text or "")
    if not match:
        raise SnapshotUnavailable(f"No service tag document link found on {page_url}")

    url = match.group(0)
    logger.debug(f"Resolved {CloudEnvironment.parse(cloud)} service tag document: {url}")
    return url


def _to_snapshot(document: Any, cloud: Union[str, CloudEnvironment], source: str) -> ServiceTagSnapshot:
    snapshot = ServiceTagSnapshot.from_document(document)
    environment = CloudEnvironment.parse(cloud)
    expected = {environment.value.casefold(), endpoints_for(environment).document_cloud.casefold()}
    if snapshot.cloud.casefold() not in expected:
        logger.warning(f"Document {source} is for cloud {snapshot.cloud}, expected {environment}")
    logger.info(
        f"Loaded service tags for {snapshot.cloud}: change number {snapshot.change_number}, "
        f"{len(snapshot)} tags"
    )
    return snapshot


def fetch_snapshot(
    cloud: Union[str, CloudEnvironment],
    session: Optional[requests.Session] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> ServiceTagSnapshot:
    """
    Download and parse the current service tag document for a cloud.

    Args:
        cloud: Cloud environment
        session: Optional requests session to reuse
        timeout: Request timeout in seconds

    Returns:
        ServiceTagSnapshot

    Raises:
        SnapshotUnavailable: On any network, HTTP, JSON or schema failure
    """
    url = resolve_download_url(cloud, session=session, timeout=timeout)
    response = _get(session, url, timeout)
    try:
        document = response.json()
    except ValueError as exc:
        raise SnapshotUnavailable(f"Service tag document at {url} is not valid JSON") from exc
    return _to_snapshot(document, cloud, url)


def load_snapshot_file(
    path: Union[str, Path],
    cloud: Union[str, CloudEnvironment, None] = None,
) -> ServiceTagSnapshot:
    """
    Load a previously downloaded service tag document.

    Args:
        path: Path to the JSON file
        cloud: Cloud the file is expected to describe, if known

    Returns:
        ServiceTagSnapshot

    Raises:
        SnapshotUnavailable: If the file is missing or malformed
    """
    file_path = Path(path).expanduser()
    try:
        with open(file_path, "r", encoding="utf-8-sig") as f:
            document = json.load(f)
    except OSError as exc:
        raise SnapshotUnavailable(f"Cannot read service tag file {file_path}: {exc}") from exc
    except ValueError as exc:
        raise SnapshotUnavailable(f"Service tag file {file_path} is not valid JSON") from exc

    if cloud is None:
        snapshot = ServiceTagSnapshot.from_document(document)
        logger.info(f"Loaded service tags for {snapshot.cloud} from {file_path}")
        return snapshot
    return _to_snapshot(document, cloud, str(file_path))
