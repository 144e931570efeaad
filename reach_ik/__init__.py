"""reach-ik - Randomized-restart inverse kinematics and reachable workspace sampling."""

__version__ = "0.1.0"

from .errors import (
    IKError,
    NotConvergedError,
    StructuralError,
    DimensionMismatchError,
    JointLimitError,
)
from .joint_limits import JointLimit, RandomConfigurationSampler, resolve_nearest_angles, wrap_to_pi
from .pose import Pose, euler_to_rotation, rotation_error
from .arm import Arm, DHJoint, SerialArm, create_six_axis_arm
from .inverse_kinematics import (
    Constraints,
    IKEngine,
    LeastSquaresIKEngine,
    RestartingIKSolver,
    create_restarting_solver,
)
from .workspace import WorkspaceSampler, WorkspaceConfig, grid_points, sample_reachable

__all__ = [
    # Errors
    "IKError",
    "NotConvergedError",
    "StructuralError",
    "DimensionMismatchError",
    "JointLimitError",
    # Joint limits and restart configurations
    "JointLimit",
    "RandomConfigurationSampler",
    "resolve_nearest_angles",
    "wrap_to_pi",
    # Poses
    "Pose",
    "euler_to_rotation",
    "rotation_error",
    # Arm models
    "Arm",
    "DHJoint",
    "SerialArm",
    "create_six_axis_arm",
    # Inverse kinematics
    "Constraints",
    "IKEngine",
    "LeastSquaresIKEngine",
    "RestartingIKSolver",
    "create_restarting_solver",
    # Workspace sampling
    "WorkspaceSampler",
    "WorkspaceConfig",
    "grid_points",
    "sample_reachable",
]
