"""n8n provisioner (WSL and Linux hosts, state-driven).

Core design goals:
- Resumable: completed steps are recorded in a state file
- Idempotent steps (download, import and launch only when missing)
- Newest Ubuntu release with a reachable WSL rootfs wins
- Centralized logging of every command and decision
"""

__all__ = []
