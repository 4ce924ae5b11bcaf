from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from .lib.env import host_arch
from .releases import DEFAULT_RELEASES
from .resolver import DEFAULT_BASE_TEMPLATES, DEFAULT_FILENAME_TEMPLATES

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        logger.info("No state at %s; starting fresh", p)
        return {}

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "yaml":
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text) if text.strip() else {}

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    done = (data.get("execution") or {}).get("completed_steps") or []
    logger.debug("Loaded state from %s (%d completed step(s))", p, len(done))
    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) == "yaml":
        p.write_text(yaml.safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True, default=str) + "\n", encoding="utf-8")
    logger.debug("Saved state to %s", p)


def ensure_defaults(state: Dict[str, Any], *, flow: str) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding user values)."""

    if flow not in {"wsl", "linux"}:
        raise ValueError(f"Unknown flow: {flow}")

    state.setdefault("version", STATE_VERSION)
    state.setdefault("config", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    cfg["flow"] = flow
    cfg.setdefault("dry_run", False)
    cfg.setdefault("arch", host_arch())

    # Container parameters shared by both flows.
    cfg.setdefault("container_name", "n8n")
    cfg.setdefault("image_ref", "n8nio/n8n:latest")
    cfg.setdefault("network_name", "n8n-network")
    cfg.setdefault("host_port", 5678)
    cfg.setdefault("container_port", 5678)
    cfg.setdefault("data_mount", "/home/node/.n8n")
    cfg.setdefault("tz", "UTC")
    # Linux mirrors the shell script: always recreate. WSL keeps a running container.
    cfg.setdefault("replace_existing", flow == "linux")

    # Paths left as None are derived from workspace_dir by ProvisionConfig.
    cfg.setdefault("workspace_dir", None)
    cfg.setdefault("data_dir", None)

    if flow == "wsl":
        cfg.setdefault("distro_name", "n8n-ubuntu")
        cfg.setdefault("default_user", None)
        cfg.setdefault("cache_dir", None)
        cfg.setdefault("distro_dir", None)
        cfg.setdefault("releases", [
            {"version": r.version, "codename": r.codename, "release_date": r.release_date.isoformat()}
            for r in DEFAULT_RELEASES
        ])
        cfg.setdefault("base_templates", list(DEFAULT_BASE_TEMPLATES))
        cfg.setdefault("filename_templates", list(DEFAULT_FILENAME_TEMPLATES))

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])

    return state


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed
