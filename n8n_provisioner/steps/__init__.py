from .step_10_check_host import CheckHostStep
from .step_20_prepare_workspace import PrepareWorkspaceStep
from .step_30_resolve_release import ResolveReleaseStep
from .step_40_download_rootfs import DownloadRootfsStep
from .step_50_import_distro import ImportDistroStep
from .step_60_enable_systemd import EnableSystemdStep
from .step_70_install_docker import InstallDockerStep
from .step_80_prepare_runtime import PrepareRuntimeStep
from .step_90_start_container import StartContainerStep

__all__ = [
    "CheckHostStep",
    "PrepareWorkspaceStep",
    "ResolveReleaseStep",
    "DownloadRootfsStep",
    "ImportDistroStep",
    "EnableSystemdStep",
    "InstallDockerStep",
    "PrepareRuntimeStep",
    "StartContainerStep",
]
