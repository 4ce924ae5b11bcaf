from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.pkg import install_docker_engine
from ._common import config_of, exec_prefix, record_decision

logger = logging.getLogger(__name__)


class InstallDockerStep:
    step_id = "70_install_docker"
    description = "Install Docker Engine"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)

        installed = install_docker_engine(prefix=exec_prefix(cfg), arch=cfg.arch, dry_run=cfg.dry_run)
        record_decision(state, "docker_installed", installed)
        return state
