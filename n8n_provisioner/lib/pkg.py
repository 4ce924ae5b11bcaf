from __future__ import annotations

import logging
import shlex
from typing import Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

DOCKER_APT_URL = "https://download.docker.com/linux/ubuntu"
DOCKER_KEYRING = "/etc/apt/keyrings/docker.gpg"
DOCKER_SOURCES_LIST = "/etc/apt/sources.list.d/docker.list"

DOCKER_PREREQUISITES = ["ca-certificates", "curl", "gnupg", "lsb-release"]
DOCKER_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]

_APT_ENV = "DEBIAN_FRONTEND=noninteractive"


def apt_update(*, prefix: Sequence[str] = (), dry_run: bool = False) -> None:
    run_cmd([*prefix, "env", _APT_ENV, "apt-get", "update"], dry_run=dry_run)


def apt_install(packages: Sequence[str], *, prefix: Sequence[str] = (), dry_run: bool = False) -> None:
    if not packages:
        return
    run_cmd([*prefix, "env", _APT_ENV, "apt-get", "install", "-y", *packages], dry_run=dry_run)


def has_command(name: str, *, prefix: Sequence[str] = (), dry_run: bool = False) -> bool:
    """True if `name` resolves on PATH (on the host or behind prefix)."""

    if dry_run:
        return False
    r = run_cmd([*prefix, "sh", "-c", f"command -v {shlex.quote(name)}"], check=False)
    return r.returncode == 0


def docker_sources_line(codename: str, *, arch: str = "amd64") -> str:
    return f"deb [arch={arch} signed-by={DOCKER_KEYRING}] {DOCKER_APT_URL} {codename} stable\n"


def install_docker_engine(*, prefix: Sequence[str] = (), arch: str = "amd64", dry_run: bool = False) -> bool:
    """Install Docker Engine from Docker's apt repository.

    Returns False when docker was already present.
    """

    if has_command("docker", prefix=prefix, dry_run=dry_run):
        logger.info("Docker is already installed")
        return False

    if not dry_run and not has_command("apt-get", prefix=prefix):
        raise RuntimeError(
            "Docker is not installed and automatic installation only supports apt-based systems. "
            "Install Docker manually and rerun."
        )

    logger.info("Installing Docker dependencies (apt)")
    apt_update(prefix=prefix, dry_run=dry_run)
    apt_install(DOCKER_PREREQUISITES, prefix=prefix, dry_run=dry_run)

    run_cmd([*prefix, "install", "-m", "0755", "-d", "/etc/apt/keyrings"], dry_run=dry_run)
    run_cmd(
        [
            *prefix,
            "sh",
            "-c",
            f"curl -fsSL {DOCKER_APT_URL}/gpg | gpg --dearmor --yes -o {DOCKER_KEYRING}",
        ],
        dry_run=dry_run,
    )
    run_cmd([*prefix, "chmod", "a+r", DOCKER_KEYRING], dry_run=dry_run)

    r = run_cmd([*prefix, "lsb_release", "-cs"], dry_run=dry_run)
    codename = r.stdout.strip() or "noble"
    line = docker_sources_line(codename, arch=arch)
    run_cmd([*prefix, "sh", "-c", f"cat > {DOCKER_SOURCES_LIST}"], input_text=line, dry_run=dry_run)

    logger.info("Installing Docker Engine (apt)")
    apt_update(prefix=prefix, dry_run=dry_run)
    apt_install(DOCKER_PACKAGES, prefix=prefix, dry_run=dry_run)

    run_cmd([*prefix, "systemctl", "enable", "--now", "docker.service"], dry_run=dry_run)
    return True
