"""Shared test fixtures for the n8n provisioner."""

from __future__ import annotations

from datetime import date
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from n8n_provisioner.lib.command import CmdResult, CommandError
from n8n_provisioner.releases import ReleaseCandidate


class CommandRecorder:
    """Stand-in for run_cmd: records argv and answers from canned responses.

    A response is chosen by the first registered matcher whose tokens all
    appear in the argv; unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self._responses: List[tuple] = []

    def respond(self, *tokens: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self._responses.append((tokens, returncode, stdout, stderr))

    def __call__(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        input_text: Optional[str] = None,
        dry_run: bool = False,
        **_: object,
    ) -> CmdResult:
        argv_list = list(argv)
        self.calls.append(argv_list)
        self.inputs.append(input_text)
        if dry_run:
            return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

        returncode, stdout, stderr = 0, "", ""
        for tokens, rc, out, err in self._responses:
            if all(t in argv_list for t in tokens):
                returncode, stdout, stderr = rc, out, err
                break

        if check and returncode != 0:
            raise CommandError(argv_list, returncode, stderr)
        return CmdResult(argv=argv_list, returncode=returncode, stdout=stdout, stderr=stderr)

    def ran(self, *tokens: str) -> bool:
        return any(all(t in call for t in tokens) for call in self.calls)

    def index_of(self, *tokens: str) -> int:
        for i, call in enumerate(self.calls):
            if all(t in call for t in tokens):
                return i
        raise AssertionError(f"no command containing {tokens}: {self.calls}")


@pytest.fixture
def commands(monkeypatch: pytest.MonkeyPatch) -> CommandRecorder:
    """Replace run_cmd everywhere it is imported."""

    recorder = CommandRecorder()
    for target in (
        "n8n_provisioner.lib.docker.run_cmd",
        "n8n_provisioner.lib.pkg.run_cmd",
        "n8n_provisioner.lib.wsl.run_cmd",
        "n8n_provisioner.steps.step_80_prepare_runtime.run_cmd",
    ):
        monkeypatch.setattr(target, recorder)
    return recorder


class FakeNetwork:
    """Deterministic probe/fetch_index collaborators for the resolver."""

    def __init__(self, reachable: Sequence[str] = (), indexes: Optional[Dict[str, str]] = None) -> None:
        self.reachable = set(reachable)
        self.indexes = dict(indexes or {})
        self.probed: List[str] = []
        self.fetched: List[str] = []

    def probe(self, uri: str) -> bool:
        self.probed.append(uri)
        return uri in self.reachable

    def fetch_index(self, uri: str) -> Optional[str]:
        self.fetched.append(uri)
        return self.indexes.get(uri)


@pytest.fixture
def network_factory() -> Callable[..., FakeNetwork]:
    return FakeNetwork


@pytest.fixture
def candidates() -> List[ReleaseCandidate]:
    return [
        ReleaseCandidate("24.04", "noble", date(2024, 4, 25)),
        ReleaseCandidate("22.04", "jammy", date(2022, 4, 21)),
    ]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "WORKSPACE_DIR",
        "DATA_DIR",
        "NETWORK_NAME",
        "CONTAINER_NAME",
        "IMAGE_REF",
        "HOST_PORT",
        "TZ_VALUE",
        "DISTRO_NAME",
    ):
        monkeypatch.delenv(name, raising=False)
