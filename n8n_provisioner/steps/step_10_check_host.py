from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.env import is_root
from ..lib.wsl import wsl_available
from ._common import config_of

logger = logging.getLogger(__name__)

WSL_INSTALL_HINT = (
    "WSL2 is not available. Open PowerShell as Administrator, run `wsl --install`, "
    "reboot if prompted, then rerun this provisioner."
)


class CheckHostStep:
    step_id = "10_check_host"
    description = "Verify host prerequisites"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)

        if cfg.flow == "wsl":
            if not wsl_available(dry_run=cfg.dry_run):
                raise RuntimeError(WSL_INSTALL_HINT)
            logger.info("WSL is available")
        elif not cfg.dry_run and not is_root():
            raise RuntimeError("This provisioner must be run as root (try prefixing with sudo).")

        return state
