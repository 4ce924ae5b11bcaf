from __future__ import annotations

from typing import Any, Dict, List

from ..config import ProvisionConfig
from ..lib.wsl import guest_prefix


def config_of(state: Dict[str, Any]) -> ProvisionConfig:
    return ProvisionConfig(raw=state.get("config") or {})


def exec_prefix(cfg: ProvisionConfig) -> List[str]:
    """argv prefix that runs a command where the container runtime lives."""

    if cfg.flow == "wsl":
        return guest_prefix(cfg.distro_name)
    return []


def record_decision(state: Dict[str, Any], key: str, value: Any) -> None:
    state.setdefault("execution", {}).setdefault("decisions", {})[key] = value
