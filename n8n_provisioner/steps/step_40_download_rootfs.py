from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Any, Dict
from urllib.parse import unquote, urlparse

from ..lib.archive import decompress_to_tar
from ..lib.http import download_file
from ..releases import ResolvedArtifact
from ._common import config_of

logger = logging.getLogger(__name__)


def cache_filename(uri: str) -> str:
    name = posixpath.basename(unquote(urlparse(uri).path))
    if not name:
        raise ValueError(f"Cannot derive a file name from {uri!r}")
    return name


class DownloadRootfsStep:
    step_id = "40_download_rootfs"
    description = "Download and unpack the root filesystem"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        if not state.get("artifact"):
            raise RuntimeError("artifact missing; run 30_resolve_release first")
        artifact = ResolvedArtifact.from_dict(state["artifact"])

        archive = Path(cfg.cache_dir) / cache_filename(artifact.rootfs_uri)
        if archive.exists():
            logger.info("Using cached %s", str(archive))
        elif cfg.dry_run:
            logger.info("Would download %s -> %s", artifact.rootfs_uri, str(archive))
        else:
            download_file(artifact.rootfs_uri, str(archive))

        tar_path = decompress_to_tar(str(archive), dry_run=cfg.dry_run)

        exe = state.setdefault("execution", {})
        exe.setdefault("paths", {}).update({"rootfs_archive": str(archive), "rootfs_tar": tar_path})
        return state
