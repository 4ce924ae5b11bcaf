from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .lib.docker import ContainerSpec
from .lib.env import PATHS
from .releases import DEFAULT_RELEASES, ReleaseCandidate, newest_first, parse_releases
from .resolver import DEFAULT_BASE_TEMPLATES, DEFAULT_FILENAME_TEMPLATES

# Environment variable -> config key.
ENV_OVERRIDES = {
    "WORKSPACE_DIR": "workspace_dir",
    "DATA_DIR": "data_dir",
    "NETWORK_NAME": "network_name",
    "CONTAINER_NAME": "container_name",
    "IMAGE_REF": "image_ref",
    "HOST_PORT": "host_port",
    "TZ_VALUE": "tz",
    "DISTRO_NAME": "distro_name",
}

WSL_GUEST_WORKSPACE = "/opt/n8n_lab"


@dataclass(frozen=True)
class ProvisionConfig:
    """Read-only view over state["config"]."""

    raw: Dict[str, Any]

    @property
    def flow(self) -> str:
        return str(self.raw.get("flow") or "linux")

    @property
    def dry_run(self) -> bool:
        return bool(self.raw.get("dry_run", False))

    @property
    def arch(self) -> str:
        return str(self.raw.get("arch") or "amd64")

    @property
    def workspace_dir(self) -> str:
        default = PATHS.wsl_workspace if self.flow == "wsl" else PATHS.linux_workspace
        return str(self.raw.get("workspace_dir") or default)

    @property
    def data_dir(self) -> str:
        explicit = self.raw.get("data_dir")
        if explicit:
            return str(explicit)
        if self.flow == "wsl":
            # Lives inside the distro, not on the Windows side.
            return f"{WSL_GUEST_WORKSPACE}/n8n_data"
        return str(Path(self.workspace_dir) / "n8n_data")

    @property
    def cache_dir(self) -> str:
        return str(self.raw.get("cache_dir") or Path(self.workspace_dir) / "cache")

    @property
    def distro_dir(self) -> str:
        return str(self.raw.get("distro_dir") or Path(self.workspace_dir) / "distro" / self.distro_name)

    @property
    def distro_name(self) -> str:
        return str(self.raw.get("distro_name") or "n8n-ubuntu")

    @property
    def default_user(self) -> Optional[str]:
        user = self.raw.get("default_user")
        return str(user) if user else None

    @property
    def container_name(self) -> str:
        return str(self.raw.get("container_name") or "n8n")

    @property
    def image_ref(self) -> str:
        return str(self.raw.get("image_ref") or "n8nio/n8n:latest")

    @property
    def network_name(self) -> str:
        return str(self.raw.get("network_name") or "n8n-network")

    @property
    def host_port(self) -> int:
        return _as_port(self.raw.get("host_port", 5678), "host_port")

    @property
    def container_port(self) -> int:
        return _as_port(self.raw.get("container_port", 5678), "container_port")

    @property
    def data_mount(self) -> str:
        return str(self.raw.get("data_mount") or "/home/node/.n8n")

    @property
    def tz(self) -> str:
        return str(self.raw.get("tz") or "UTC")

    @property
    def replace_existing(self) -> bool:
        return bool(self.raw.get("replace_existing", self.flow == "linux"))

    @property
    def releases(self) -> List[ReleaseCandidate]:
        raw = self.raw.get("releases")
        if not raw:
            return newest_first(DEFAULT_RELEASES)
        return parse_releases(raw)

    @property
    def base_templates(self) -> List[str]:
        return [str(t) for t in (self.raw.get("base_templates") or DEFAULT_BASE_TEMPLATES)]

    @property
    def filename_templates(self) -> List[str]:
        return [str(t) for t in (self.raw.get("filename_templates") or DEFAULT_FILENAME_TEMPLATES)]

    def container_spec(self) -> ContainerSpec:
        return ContainerSpec(
            name=self.container_name,
            image=self.image_ref,
            network=self.network_name,
            host_port=self.host_port,
            container_port=self.container_port,
            data_dir=self.data_dir,
            data_mount=self.data_mount,
            env={"TZ": self.tz},
        )


def _as_port(value: Any, key: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be an integer, got {value!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"{key} out of range: {port}")
    return port


def load_config_file(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("provisioning config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")
    return raw


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    return {key: env[name] for name, key in ENV_OVERRIDES.items() if env.get(name)}


def apply_overrides(
    cfg: Dict[str, Any],
    *,
    file_values: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Layer config: existing values < YAML file < environment."""

    if file_values:
        # The flow is chosen by the entry point, never by a config file.
        cfg.update({k: v for k, v in file_values.items() if k != "flow"})
    cfg.update(env_overrides(environ))
    return cfg
