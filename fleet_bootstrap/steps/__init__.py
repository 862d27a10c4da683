from .step_10_preflight_harden import PreflightHardenStep
from .step_20_install_runtime import InstallRuntimeStep
from .step_30_install_mesh_agent import InstallMeshAgentStep
from .step_40_enroll import EnrollStep
from .step_50_materialize_stack import MaterializeStackStep
from .step_60_launch_stack import LaunchStackStep
from .step_70_install_auto_update import InstallAutoUpdateStep
from .step_80_install_heartbeat import InstallHeartbeatStep

__all__ = [
    "PreflightHardenStep",
    "InstallRuntimeStep",
    "InstallMeshAgentStep",
    "EnrollStep",
    "MaterializeStackStep",
    "LaunchStackStep",
    "InstallAutoUpdateStep",
    "InstallHeartbeatStep",
]
