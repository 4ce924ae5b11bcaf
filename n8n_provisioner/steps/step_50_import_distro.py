from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.wsl import distro_exists, import_distro
from ._common import config_of, record_decision

logger = logging.getLogger(__name__)


class ImportDistroStep:
    step_id = "50_import_distro"
    description = "Import the rootfs as a WSL distribution"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        name = cfg.distro_name

        if distro_exists(name, dry_run=cfg.dry_run):
            logger.info("WSL distribution %s already imported", name)
            record_decision(state, "distro_imported", False)
            return state

        paths = (state.get("execution") or {}).get("paths") or {}
        tar_path = paths.get("rootfs_tar")
        if not tar_path:
            raise RuntimeError("execution.paths.rootfs_tar missing; run 40_download_rootfs first")

        import_distro(name, cfg.distro_dir, tar_path, dry_run=cfg.dry_run)
        logger.info("Imported %s into %s", name, cfg.distro_dir)
        record_decision(state, "distro_imported", True)
        return state
