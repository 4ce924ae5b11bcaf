from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single idempotent provisioning step."""

    step_id: str
    description: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def _check_step_ids(steps: Sequence[Step], *names: Optional[str]) -> None:
    known = {s.step_id for s in steps}
    for name in names:
        if name is not None and name not in known:
            raise ValueError(f"Unknown step id {name!r}; expected one of: {', '.join(sorted(known))}")


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run steps in order, skipping ones already recorded as completed."""

    _check_step_ids(steps, start_at, stop_after)

    ran: List[str] = []
    skipped: List[str] = []
    exe = state.setdefault("execution", {})

    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                continue

        exe["current_step"] = step.step_id

        if (not force) and is_step_completed(state, step.step_id):
            logger.info("Skipping %s (already completed)", step.step_id)
            skipped.append(step.step_id)
        else:
            logger.info("Running %s: %s", step.step_id, step.description)
            t0 = time.monotonic()
            state = step.run(state)
            mark_step_completed(state, step.step_id)
            ran.append(step.step_id)
            exe = state.setdefault("execution", {})
            exe.setdefault("history", []).append(
                {
                    "step": step.step_id,
                    "finished_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
                    "seconds": round(time.monotonic() - t0, 3),
                }
            )

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
