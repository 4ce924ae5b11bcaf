from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.command import run_cmd
from ..lib.docker import ensure_network
from ._common import config_of, exec_prefix, record_decision

logger = logging.getLogger(__name__)

# uid/gid of the `node` user in the n8n image.
N8N_UID = 1000


class PrepareRuntimeStep:
    step_id = "80_prepare_runtime"
    description = "Prepare the Docker daemon, network and data volume"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        prefix = exec_prefix(cfg)
        dry_run = cfg.dry_run

        logger.info("Ensuring Docker daemon is running")
        run_cmd([*prefix, "systemctl", "restart", "docker.service"], dry_run=dry_run)

        created = ensure_network(cfg.network_name, prefix=prefix, dry_run=dry_run)
        record_decision(state, "network_created", created)

        logger.info("Preparing persistent data directory %s", cfg.data_dir)
        run_cmd([*prefix, "mkdir", "-p", cfg.data_dir], dry_run=dry_run)
        run_cmd([*prefix, "chown", f"{N8N_UID}:{N8N_UID}", cfg.data_dir], dry_run=dry_run)
        run_cmd([*prefix, "chmod", "0770", cfg.data_dir], dry_run=dry_run)
        return state
