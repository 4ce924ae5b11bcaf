from __future__ import annotations

import argparse
import copy
import logging
from typing import Any, Dict, List, Optional

from .config import apply_overrides, load_config_file
from .lib.env import PATHS
from .logging_utils import configure_logging
from .pipeline import Step, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    CheckHostStep,
    DownloadRootfsStep,
    EnableSystemdStep,
    ImportDistroStep,
    InstallDockerStep,
    PrepareRuntimeStep,
    PrepareWorkspaceStep,
    ResolveReleaseStep,
    StartContainerStep,
)

logger = logging.getLogger(__name__)


def build_steps(flow: str) -> List[Step]:
    if flow == "wsl":
        return [
            CheckHostStep(),
            PrepareWorkspaceStep(),
            ResolveReleaseStep(),
            DownloadRootfsStep(),
            ImportDistroStep(),
            EnableSystemdStep(),
            InstallDockerStep(),
            PrepareRuntimeStep(),
            StartContainerStep(),
        ]
    if flow == "linux":
        return [
            CheckHostStep(),
            PrepareWorkspaceStep(),
            InstallDockerStep(),
            PrepareRuntimeStep(),
            StartContainerStep(),
        ]
    raise ValueError(f"Unknown flow: {flow}")


def run(
    *,
    flow: str,
    state_path: str,
    log_path: str,
    config_path: Optional[str] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
    steps: Optional[List[Step]] = None,
) -> Dict[str, Any]:
    """Run a provisioning flow, persisting state for resume."""

    actual_log_path = configure_logging(log_path=log_path)

    state = ensure_defaults(load_state(state_path), flow=flow)
    # File and env overrides apply to this run only.
    stored_cfg = state["config"]
    file_values = load_config_file(config_path) if config_path else {}
    cfg = apply_overrides(copy.deepcopy(stored_cfg), file_values=file_values)
    state["config"] = cfg
    cfg["dry_run"] = bool(dry_run or file_values.get("dry_run"))

    state["execution"].setdefault("paths", {})["log_path_actual"] = actual_log_path

    try:
        result = run_pipeline(
            state=state,
            steps=steps if steps is not None else build_steps(flow),
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        summary = state.setdefault("execution", {}).setdefault("summary", {})
        summary["ran_steps"] = result.ran_steps
        summary["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        logger.exception("Provisioning failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        # A dry run must not mark steps completed for the real run.
        if not cfg["dry_run"]:
            save_state(state_path, {**state, "config": stored_cfg})


def _parser(flow: str) -> argparse.ArgumentParser:
    prog = "n8n-provision-wsl" if flow == "wsl" else "n8n-provision-linux"
    p = argparse.ArgumentParser(prog=prog)
    p.add_argument("--config", default=None, help="Optional YAML config file")
    p.add_argument("--state", default=PATHS.state_default(flow), help="Path to run state (json|yaml)")
    p.add_argument("--log", default=PATHS.log_default(flow), help="Path to provisioning log")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 40_download_rootfs)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    return p


def main(argv: Optional[list[str]] = None, *, flow: str = "linux") -> int:
    args = _parser(flow).parse_args(argv)

    try:
        run(
            flow=flow,
            state_path=args.state,
            log_path=args.log,
            config_path=args.config,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=bool(args.force),
            dry_run=bool(args.dry_run),
        )
    except Exception as e:
        logger.error("Provisioning aborted: %s", e)
        return 1
    return 0


def main_wsl(argv: Optional[list[str]] = None) -> int:
    return main(argv, flow="wsl")


def main_linux(argv: Optional[list[str]] = None) -> int:
    return main(argv, flow="linux")


if __name__ == "__main__":
    raise SystemExit(main_linux())
