"""HTTP helpers backed by requests.

probe_uri and fetch_index are the default network collaborators of the
artifact resolver. Neither raises: failures collapse to False / None so the
resolver can move on to its next candidate.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import requests

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_S = 15.0
DOWNLOAD_TIMEOUT_S = 60.0
CHUNK_SIZE = 1024 * 1024


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def probe_uri(uri: str, *, timeout: float = HTTP_TIMEOUT_S) -> bool:
    """HEAD the URI; True when it answers 2xx or 3xx."""

    try:
        resp = requests.head(uri, allow_redirects=True, timeout=timeout)
    except requests.RequestException as e:
        logger.debug("Probe %s unreachable (%s)", uri, e.__class__.__name__)
        return False

    if is_success_status(resp.status_code):
        logger.debug("Probe %s ok (HTTP %s)", uri, resp.status_code)
        return True

    logger.debug("Probe %s absent (HTTP %s)", uri, resp.status_code)
    return False


def fetch_index(uri: str, *, timeout: float = HTTP_TIMEOUT_S) -> Optional[str]:
    try:
        resp = requests.get(uri, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.debug("Index %s unavailable (%s)", uri, e)
        return None
    return resp.text


def download_file(uri: str, dest: str, *, timeout: float = DOWNLOAD_TIMEOUT_S) -> str:
    """Stream uri to dest.

    Bytes land in dest + ".part" first and are renamed on completion, so an
    interrupted download never looks cached on the next run.
    """

    target = Path(dest)
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_name(target.name + ".part")

    logger.info("Downloading %s -> %s", uri, str(target))
    with requests.get(uri, stream=True, timeout=timeout) as resp:
        resp.raise_for_status()
        total = 0
        with open(partial, "wb") as f:
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    total += len(chunk)

    os.replace(partial, target)
    logger.info("Downloaded %d bytes", total)
    return str(target)
