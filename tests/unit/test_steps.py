"""Tests for the individual provisioning steps."""

from __future__ import annotations

import gzip
import io
import tarfile
from pathlib import Path
from typing import Any, Dict

import pytest

from n8n_provisioner.resolver import ArtifactResolver, NoArtifactFound
from n8n_provisioner.state_store import ensure_defaults
from n8n_provisioner.steps import (
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
from n8n_provisioner.steps.step_60_enable_systemd import render_wsl_conf, systemd_enabled

GUEST = ["wsl.exe", "-d", "n8n-ubuntu", "-u", "root", "--"]
ROOTFS_URI = "https://cloud-images.ubuntu.com/wsl/releases/24.04/current/ubuntu-noble-wsl-amd64-wsl.rootfs.tar.gz"


def _state(flow: str, **cfg: Any) -> Dict[str, Any]:
    state = ensure_defaults({}, flow=flow)
    state["config"].update(cfg)
    return state


def _rootfs_gz() -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        info = tarfile.TarInfo("etc/os-release")
        body = b"NAME=Ubuntu\n"
        info.size = len(body)
        tf.addfile(info, io.BytesIO(body))
    return gzip.compress(buf.getvalue())


class TestCheckHost:
    def test_wsl_missing(self, commands):
        commands.respond("--status", returncode=1)
        with pytest.raises(RuntimeError, match="wsl --install"):
            CheckHostStep().run(_state("wsl"))

    def test_wsl_present(self, commands):
        CheckHostStep().run(_state("wsl"))
        assert commands.calls == [["wsl.exe", "--status"]]

    def test_linux_requires_root(self, monkeypatch):
        monkeypatch.setattr("n8n_provisioner.steps.step_10_check_host.is_root", lambda: False)
        with pytest.raises(RuntimeError, match="root"):
            CheckHostStep().run(_state("linux"))

    def test_linux_dry_run_skips_root_check(self, monkeypatch):
        monkeypatch.setattr("n8n_provisioner.steps.step_10_check_host.is_root", lambda: False)
        CheckHostStep().run(_state("linux", dry_run=True))


class TestPrepareWorkspace:
    def test_linux_creates_workspace_and_data(self, tmp_path, monkeypatch):
        umasks = []
        monkeypatch.setattr("n8n_provisioner.steps.step_20_prepare_workspace.os.umask", umasks.append)
        state = PrepareWorkspaceStep().run(_state("linux", workspace_dir=str(tmp_path / "lab")))

        assert (tmp_path / "lab" / "n8n_data").is_dir()
        assert umasks == [0o077]
        assert str(tmp_path / "lab" / "n8n_data") in state["execution"]["paths"]["created"]

    def test_wsl_creates_host_dirs_only(self, tmp_path):
        PrepareWorkspaceStep().run(_state("wsl", workspace_dir=str(tmp_path)))
        assert (tmp_path / "cache").is_dir()
        assert (tmp_path / "distro" / "n8n-ubuntu").is_dir()
        assert not (tmp_path / "n8n_data").exists()

    def test_dry_run_creates_nothing(self, tmp_path):
        state = PrepareWorkspaceStep().run(_state("wsl", workspace_dir=str(tmp_path / "lab"), dry_run=True))
        assert not (tmp_path / "lab").exists()
        assert state["execution"]["paths"]["created"]


class TestResolveRelease:
    def test_records_artifact(self, network_factory):
        net = network_factory(reachable=[ROOTFS_URI])
        step = ResolveReleaseStep(ArtifactResolver(net.probe, net.fetch_index))
        state = step.run(_state("wsl"))

        assert state["artifact"] == {
            "version": "24.04",
            "codename": "noble",
            "rootfs_uri": ROOTFS_URI,
            "release_date": "2024-04-25",
        }
        assert state["execution"]["decisions"]["ubuntu_release"] == "24.04 (noble)"

    def test_uses_configured_releases(self, network_factory):
        net = network_factory()
        step = ResolveReleaseStep(ArtifactResolver(net.probe, net.fetch_index))
        state = _state("wsl", releases=[{"version": "22.04", "codename": "jammy", "release_date": "2022-04-21"}])

        with pytest.raises(NoArtifactFound) as exc:
            step.run(state)

        assert [c.codename for c in exc.value.attempted] == ["jammy"]
        assert "artifact" not in state


class TestDownloadRootfs:
    def _state(self, tmp_path: Path, **cfg: Any) -> Dict[str, Any]:
        state = _state("wsl", workspace_dir=str(tmp_path), **cfg)
        state["artifact"] = {
            "version": "24.04",
            "codename": "noble",
            "rootfs_uri": ROOTFS_URI,
            "release_date": "2024-04-25",
        }
        return state

    def test_downloads_then_decompresses(self, tmp_path, monkeypatch):
        downloads = []

        def fake_download(uri: str, dest: str) -> str:
            downloads.append((uri, dest))
            Path(dest).parent.mkdir(parents=True, exist_ok=True)
            Path(dest).write_bytes(_rootfs_gz())
            return dest

        monkeypatch.setattr("n8n_provisioner.steps.step_40_download_rootfs.download_file", fake_download)
        state = DownloadRootfsStep().run(self._state(tmp_path))

        archive = tmp_path / "cache" / "ubuntu-noble-wsl-amd64-wsl.rootfs.tar.gz"
        assert downloads == [(ROOTFS_URI, str(archive))]
        paths = state["execution"]["paths"]
        assert paths["rootfs_archive"] == str(archive)
        assert paths["rootfs_tar"] == str(tmp_path / "cache" / "ubuntu-noble-wsl-amd64-wsl.rootfs.tar")
        assert Path(paths["rootfs_tar"]).exists()

    def test_cached_archive_is_not_downloaded_again(self, tmp_path, monkeypatch):
        cache = tmp_path / "cache"
        cache.mkdir()
        (cache / "ubuntu-noble-wsl-amd64-wsl.rootfs.tar.gz").write_bytes(_rootfs_gz())

        def fail(*_a, **_k):
            raise AssertionError("download should not run")

        monkeypatch.setattr("n8n_provisioner.steps.step_40_download_rootfs.download_file", fail)
        DownloadRootfsStep().run(self._state(tmp_path))

    def test_requires_artifact(self):
        with pytest.raises(RuntimeError, match="30_resolve_release"):
            DownloadRootfsStep().run(_state("wsl"))


class TestImportDistro:
    def test_skips_existing(self, commands):
        commands.respond("--list", stdout="n8n-ubuntu\r\n")
        state = ImportDistroStep().run(_state("wsl"))
        assert not commands.ran("--import")
        assert state["execution"]["decisions"]["distro_imported"] is False

    def test_imports_tar(self, commands, tmp_path):
        state = _state("wsl", workspace_dir=str(tmp_path))
        state["execution"]["paths"] = {"rootfs_tar": str(tmp_path / "cache" / "rootfs.tar")}
        ImportDistroStep().run(state)

        i = commands.index_of("--import")
        assert commands.calls[i][2:5] == [
            "n8n-ubuntu",
            str(tmp_path / "distro" / "n8n-ubuntu"),
            str(tmp_path / "cache" / "rootfs.tar"),
        ]

    def test_requires_tar(self, commands):
        with pytest.raises(RuntimeError, match="rootfs_tar"):
            ImportDistroStep().run(_state("wsl"))


class TestEnableSystemd:
    def test_render_merges_existing(self):
        out = render_wsl_conf("[network]\nhostname = lab\n", default_user="dev")
        assert "[network]" in out
        assert "hostname = lab" in out
        assert systemd_enabled(out, default_user="dev")

    def test_render_replaces_garbage(self):
        assert systemd_enabled(render_wsl_conf("not an ini file"))

    def test_detects_disabled(self):
        assert not systemd_enabled("")
        assert not systemd_enabled("[boot]\nsystemd=false\n")
        assert not systemd_enabled("[boot]\nsystemd=true\n", default_user="dev")

    def test_writes_conf_and_restarts(self, commands):
        commands.respond("cat", "/etc/wsl.conf", returncode=1)
        EnableSystemdStep().run(_state("wsl"))

        write_idx = commands.index_of("bash", "-c", "cat > /etc/wsl.conf")
        assert "systemd = true" in commands.inputs[write_idx]
        assert commands.index_of("--terminate", "n8n-ubuntu") > write_idx

    def test_already_enabled_is_noop(self, commands):
        commands.respond("cat", "/etc/wsl.conf", stdout="[boot]\nsystemd=true\n")
        state = EnableSystemdStep().run(_state("wsl"))
        assert not commands.ran("--terminate")
        assert state["execution"]["decisions"]["systemd_enabled"] is True

    def test_creates_default_user(self, commands):
        commands.respond("id", "-u", "dev", returncode=1)
        EnableSystemdStep().run(_state("wsl", default_user="dev"))
        assert commands.ran("useradd", "-m", "dev")


class TestContainerSteps:
    def test_install_docker_runs_inside_distro(self, commands):
        commands.respond("command -v docker", returncode=1)
        state = InstallDockerStep().run(_state("wsl"))
        assert commands.calls and all(call[: len(GUEST)] == GUEST for call in commands.calls)
        assert state["execution"]["decisions"]["docker_installed"] is True

    def test_install_docker_on_host(self, commands):
        state = InstallDockerStep().run(_state("linux"))
        assert commands.calls == [["sh", "-c", "command -v docker"]]
        assert state["execution"]["decisions"]["docker_installed"] is False

    def test_prepare_runtime_linux(self, commands):
        commands.respond("network", "inspect", returncode=1)
        PrepareRuntimeStep().run(_state("linux", workspace_dir="/srv/lab"))

        assert commands.calls[0] == ["systemctl", "restart", "docker.service"]
        assert commands.ran("docker", "network", "create", "n8n-network")
        assert commands.ran("chown", "1000:1000", "/srv/lab/n8n_data")
        assert commands.ran("chmod", "0770", "/srv/lab/n8n_data")

    def test_start_container_linux_replaces(self, commands):
        commands.respond("ps", stdout="n8n\n")
        state = StartContainerStep().run(_state("linux", host_port="8080", tz="Europe/Paris"))

        assert commands.ran("rm", "-f", "n8n")
        run_call = commands.calls[commands.index_of("docker", "run")]
        assert "8080:5678" in run_call
        assert "TZ=Europe/Paris" in run_call
        assert state["endpoint"] == "http://localhost:8080/"
        assert state["execution"]["decisions"]["container"]["outcome"] == "created"

    def test_start_container_wsl_keeps_running(self, commands):
        commands.respond("ps", stdout="n8n\n")
        state = StartContainerStep().run(_state("wsl"))
        assert not commands.ran("rm")
        assert state["execution"]["decisions"]["container"]["outcome"] == "running"
