from __future__ import annotations

import configparser
import io
import logging
from typing import Any, Dict, Optional

from ..lib.wsl import guest_cmd, read_guest_file, terminate_distro, write_guest_file
from ._common import config_of, record_decision

logger = logging.getLogger(__name__)

WSL_CONF = "/etc/wsl.conf"


def render_wsl_conf(existing: str, *, default_user: Optional[str] = None) -> str:
    """Merge systemd (and optionally a default user) into an existing wsl.conf."""

    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # keep key case
    if existing.strip():
        try:
            parser.read_string(existing)
        except configparser.Error as e:
            logger.warning("Replacing unparsable wsl.conf (%s)", e)
            parser = configparser.ConfigParser(interpolation=None)
            parser.optionxform = str

    if not parser.has_section("boot"):
        parser.add_section("boot")
    parser.set("boot", "systemd", "true")

    if default_user:
        if not parser.has_section("user"):
            parser.add_section("user")
        parser.set("user", "default", default_user)

    out = io.StringIO()
    parser.write(out)
    return out.getvalue()


def systemd_enabled(conf: str, *, default_user: Optional[str] = None) -> bool:
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(conf)
    except configparser.Error:
        return False
    if parser.get("boot", "systemd", fallback="").strip().lower() != "true":
        return False
    if default_user and parser.get("user", "default", fallback="") != default_user:
        return False
    return True


class EnableSystemdStep:
    step_id = "60_enable_systemd"
    description = "Enable systemd inside the distribution"

    def _ensure_user(self, distro: str, user: str, *, dry_run: bool) -> None:
        r = guest_cmd(distro, ["id", "-u", user], check=False, dry_run=dry_run)
        if r.returncode == 0 and not dry_run:
            return
        guest_cmd(distro, ["useradd", "-m", "-s", "/bin/bash", "-G", "sudo", user], dry_run=dry_run)

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        distro = cfg.distro_name
        user = cfg.default_user

        existing = read_guest_file(distro, WSL_CONF, dry_run=cfg.dry_run)
        if systemd_enabled(existing, default_user=user):
            logger.info("systemd already enabled in %s", distro)
            record_decision(state, "systemd_enabled", True)
            return state

        if user:
            self._ensure_user(distro, user, dry_run=cfg.dry_run)

        write_guest_file(distro, WSL_CONF, render_wsl_conf(existing, default_user=user), dry_run=cfg.dry_run)

        # wsl.conf is only read on distro start.
        terminate_distro(distro, dry_run=cfg.dry_run)

        record_decision(state, "systemd_enabled", True)
        logger.info("Enabled systemd in %s (default user=%s)", distro, user or "root")
        return state
