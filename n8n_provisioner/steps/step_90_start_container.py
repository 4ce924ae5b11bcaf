from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.docker import launch_container
from ._common import config_of, exec_prefix, record_decision

logger = logging.getLogger(__name__)


class StartContainerStep:
    step_id = "90_start_container"
    description = "Start the n8n container"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        spec = cfg.container_spec()

        outcome = launch_container(
            spec,
            prefix=exec_prefix(cfg),
            replace_existing=cfg.replace_existing,
            dry_run=cfg.dry_run,
        )
        record_decision(state, "container", {"name": spec.name, "image": spec.image, "outcome": outcome})

        url = f"http://localhost:{spec.host_port}/"
        state["endpoint"] = url
        logger.info("n8n container is running. Access it at %s", url)
        return state
