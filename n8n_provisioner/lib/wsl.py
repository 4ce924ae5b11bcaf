from __future__ import annotations

import logging
import shlex
from typing import List, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

WSL_EXE = "wsl.exe"

# wsl.exe writes its own messages as UTF-16LE regardless of console code page.
WSL_ENCODING = "utf-16-le"


def decode_wsl_output(text: str) -> str:
    """Normalize wsl.exe output that was decoded with the wrong codec."""
    return text.replace("\ufeff", "").replace("\x00", "").replace("\r", "")


def guest_prefix(distro: str, *, user: str = "root") -> List[str]:
    return [WSL_EXE, "-d", distro, "-u", user, "--"]


def guest_cmd(distro: str, argv: Sequence[str], *, check: bool = True, dry_run: bool = False) -> CmdResult:
    """Run a command inside the distro as root."""

    return run_cmd([*guest_prefix(distro), *argv], check=check, dry_run=dry_run)


def wsl_available(*, dry_run: bool = False) -> bool:
    try:
        r = run_cmd([WSL_EXE, "--status"], check=False, encoding=WSL_ENCODING, dry_run=dry_run)
    except FileNotFoundError:
        return False
    return r.ok


def list_distros(*, dry_run: bool = False) -> List[str]:
    if dry_run:
        return []
    r = run_cmd([WSL_EXE, "--list", "--quiet"], check=False, encoding=WSL_ENCODING)
    if r.returncode != 0:
        # No distributions installed yet also exits non-zero.
        return []
    return [line.strip() for line in decode_wsl_output(r.stdout).splitlines() if line.strip()]


def distro_exists(name: str, *, dry_run: bool = False) -> bool:
    return name.lower() in {d.lower() for d in list_distros(dry_run=dry_run)}


def import_distro(name: str, install_dir: str, tar_path: str, *, dry_run: bool = False) -> None:
    run_cmd(
        [WSL_EXE, "--import", name, install_dir, tar_path, "--version", "2"],
        encoding=WSL_ENCODING,
        dry_run=dry_run,
    )


def terminate_distro(name: str, *, dry_run: bool = False) -> None:
    run_cmd([WSL_EXE, "--terminate", name], check=False, encoding=WSL_ENCODING, dry_run=dry_run)


def read_guest_file(distro: str, path: str, *, dry_run: bool = False) -> str:
    if dry_run:
        return ""
    r = guest_cmd(distro, ["cat", path], check=False)
    return r.stdout if r.returncode == 0 else ""


def write_guest_file(distro: str, path: str, contents: str, *, dry_run: bool = False) -> None:
    quoted = shlex.quote(path)
    run_cmd(
        [*guest_prefix(distro), "bash", "-c", f"cat > {quoted}"],
        input_text=contents,
        dry_run=dry_run,
    )
