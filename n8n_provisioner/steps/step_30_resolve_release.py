from __future__ import annotations

import logging
from typing import Any, Dict

from ..resolver import ArtifactResolver
from ._common import config_of, record_decision

logger = logging.getLogger(__name__)


class ResolveReleaseStep:
    step_id = "30_resolve_release"
    description = "Find the newest Ubuntu release with a WSL rootfs"

    def __init__(self, resolver: ArtifactResolver | None = None) -> None:
        self.resolver = resolver

    def _resolver_for(self, state: Dict[str, Any]) -> ArtifactResolver:
        if self.resolver is not None:
            return self.resolver
        cfg = config_of(state)
        return ArtifactResolver(
            base_templates=cfg.base_templates,
            filename_templates=cfg.filename_templates,
            arch=cfg.arch,
        )

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)

        # NoArtifactFound propagates: there is nothing to import without a rootfs.
        artifact = self._resolver_for(state).resolve(cfg.releases)

        state["artifact"] = artifact.to_dict()
        record_decision(state, "ubuntu_release", f"{artifact.version} ({artifact.codename})")
        return state
