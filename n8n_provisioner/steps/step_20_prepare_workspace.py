from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from ._common import config_of

logger = logging.getLogger(__name__)


def _ensure_dirs(paths: List[str], *, dry_run: bool) -> List[str]:
    created: List[str] = []
    for path in paths:
        p = Path(path)
        if p.is_dir():
            continue
        if dry_run:
            logger.info("Would create %s", str(p))
        else:
            p.mkdir(parents=True, exist_ok=True)
            logger.info("Created %s", str(p))
        created.append(str(p))
    return created


class PrepareWorkspaceStep:
    step_id = "20_prepare_workspace"
    description = "Create workspace directories"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)

        if cfg.flow == "wsl":
            # Host side only; the data dir lives inside the distro.
            paths = [cfg.workspace_dir, cfg.cache_dir, cfg.distro_dir]
        else:
            if not cfg.dry_run:
                os.umask(0o077)
            paths = [cfg.workspace_dir, cfg.data_dir]

        created = _ensure_dirs(paths, dry_run=cfg.dry_run)

        exe = state.setdefault("execution", {})
        exe.setdefault("paths", {}).update({"workspace_dir": cfg.workspace_dir, "created": created})
        return state
