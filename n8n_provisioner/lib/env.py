from __future__ import annotations

import os
import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    linux_workspace: str = "/opt/n8n_lab"
    linux_state: str = "/var/lib/n8n-provisioner/state.json"
    linux_log: str = "/var/log/n8n-provisioner.log"
    wsl_workspace: str = os.path.join(os.path.expanduser("~"), "n8n_lab")
    wsl_state: str = os.path.join(os.path.expanduser("~"), "n8n_lab", "state.json")
    wsl_log: str = os.path.join(os.path.expanduser("~"), "n8n_lab", "n8n-provisioner.log")

    def state_default(self, flow: str) -> str:
        return self.wsl_state if flow == "wsl" else self.linux_state

    def log_default(self, flow: str) -> str:
        return self.wsl_log if flow == "wsl" else self.linux_log


PATHS = Paths()


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
    }.get(m, m)


def host_arch() -> str:
    return normalize_arch(platform.machine() or "amd64")


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0
