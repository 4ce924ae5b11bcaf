from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerSpec:
    name: str
    image: str
    network: str
    host_port: int
    container_port: int
    data_dir: str
    data_mount: str
    restart: str = "unless-stopped"
    env: Dict[str, str] = field(default_factory=dict)

    def run_argv(self) -> List[str]:
        argv = [
            "docker",
            "run",
            "-d",
            "--name",
            self.name,
            "--restart",
            self.restart,
            "--network",
            self.network,
            "-p",
            f"{self.host_port}:{self.container_port}",
            "-v",
            f"{self.data_dir}:{self.data_mount}",
        ]
        for k, v in sorted(self.env.items()):
            argv += ["-e", f"{k}={v}"]
        argv.append(self.image)
        return argv


def docker_cmd(argv: Sequence[str], *, prefix: Sequence[str] = (), check: bool = True, dry_run: bool = False):
    """Run a docker CLI command, optionally through an exec prefix (e.g. a WSL distro)."""

    return run_cmd([*prefix, "docker", *argv], check=check, dry_run=dry_run)


def ensure_network(name: str, *, prefix: Sequence[str] = (), dry_run: bool = False) -> bool:
    """Create the network if missing. Returns True when it was created."""

    r = docker_cmd(["network", "inspect", name], prefix=prefix, check=False, dry_run=dry_run)
    if r.ok and not dry_run:
        logger.info("Docker network %s already exists", name)
        return False
    docker_cmd(["network", "create", name], prefix=prefix, dry_run=dry_run)
    return True


def container_names(*, prefix: Sequence[str] = (), running_only: bool = False, dry_run: bool = False) -> List[str]:
    argv = ["ps", "--format", "{{.Names}}"]
    if not running_only:
        argv.insert(1, "-a")
    r = docker_cmd(argv, prefix=prefix, check=False, dry_run=dry_run)
    if r.returncode != 0:
        return []
    return [line.strip() for line in r.stdout.splitlines() if line.strip()]


def container_exists(name: str, *, prefix: Sequence[str] = (), dry_run: bool = False) -> bool:
    return name in container_names(prefix=prefix, dry_run=dry_run)


def container_running(name: str, *, prefix: Sequence[str] = (), dry_run: bool = False) -> bool:
    return name in container_names(prefix=prefix, running_only=True, dry_run=dry_run)


def remove_container(name: str, *, prefix: Sequence[str] = (), dry_run: bool = False) -> None:
    docker_cmd(["rm", "-f", name], prefix=prefix, dry_run=dry_run)


def start_existing(name: str, *, prefix: Sequence[str] = (), dry_run: bool = False) -> None:
    docker_cmd(["start", name], prefix=prefix, dry_run=dry_run)


def pull_image(image: str, *, prefix: Sequence[str] = (), dry_run: bool = False) -> None:
    docker_cmd(["pull", image], prefix=prefix, dry_run=dry_run)


def run_container(spec: ContainerSpec, *, prefix: Sequence[str] = (), dry_run: bool = False) -> str:
    r = run_cmd([*prefix, *spec.run_argv()], dry_run=dry_run)
    container_id = r.stdout.strip()
    logger.info("Started container %s %s", spec.name, container_id[:12])
    return container_id


def launch_container(
    spec: ContainerSpec,
    *,
    prefix: Sequence[str] = (),
    replace_existing: bool = False,
    dry_run: bool = False,
) -> str:
    """Bring the named container up.

    Returns one of "running" (left alone), "started" (existing container
    restarted) or "created".
    """

    exists = container_exists(spec.name, prefix=prefix, dry_run=dry_run)
    if exists and replace_existing:
        logger.info("Existing %s container found; removing it", spec.name)
        remove_container(spec.name, prefix=prefix, dry_run=dry_run)
        exists = False

    if exists:
        if container_running(spec.name, prefix=prefix, dry_run=dry_run):
            logger.info("Container %s is already running", spec.name)
            return "running"
        start_existing(spec.name, prefix=prefix, dry_run=dry_run)
        return "started"

    pull_image(spec.image, prefix=prefix, dry_run=dry_run)
    run_container(spec, prefix=prefix, dry_run=dry_run)
    return "created"
