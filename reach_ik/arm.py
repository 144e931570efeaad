"""Arm models: the interface the solvers mutate, and a DH serial chain."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence
import copy
import numpy as np

from .errors import DimensionMismatchError, JointLimitError
from .joint_limits import JointLimit
from .pose import Pose


class Arm(ABC):
    """Abstract interface for an articulated chain with a joint state.

    The solvers only talk to an arm through this interface. An arm is owned
    by one caller at a time: solvers mutate it in place and must not be run
    concurrently on the same instance.
    """

    @abstractmethod
    def joint_positions(self) -> np.ndarray:
        """Get a copy of the current joint configuration (radians)."""
        pass

    @abstractmethod
    def set_joint_positions(self, positions: Sequence[float]) -> None:
        """Set the joint configuration, validating length and limits.

        Raises:
            DimensionMismatchError: Wrong number of joint values.
            JointLimitError: A bounded joint is outside its limits.
        """
        pass

    @abstractmethod
    def set_joint_positions_unchecked(self, positions: Sequence[float]) -> None:
        """Set the joint configuration without checking joint limits."""
        pass

    @abstractmethod
    def iter_joint_limits(self) -> Iterator[JointLimit]:
        """Iterate over joint limits in chain order."""
        pass

    @abstractmethod
    def end_effector_pose(self) -> Pose:
        """Forward kinematics of the current configuration."""
        pass

    def clone(self) -> "Arm":
        """Independent deep copy, safe to hand to another worker."""
        return copy.deepcopy(self)


@dataclass
class DHJoint:
    """Revolute joint described by modified DH parameters."""

    alpha: float
    a: float
    d: float
    theta_offset: float = 0.0
    limit: JointLimit = field(default_factory=lambda: JointLimit(-np.pi, np.pi))


def dh_transform(alpha: float, a: float, d: float, theta: float) -> np.ndarray:
    """Compute DH transformation matrix.

    Args:
        alpha: Link twist angle.
        a: Link length.
        d: Link offset.
        theta: Joint angle.

    Returns:
        4x4 transformation matrix.
    """
    ct, st = np.cos(theta), np.sin(theta)
    ca, sa = np.cos(alpha), np.sin(alpha)

    return np.array([
        [ct, -st, 0, a],
        [st * ca, ct * ca, -sa, -d * sa],
        [st * sa, ct * sa, ca, d * ca],
        [0, 0, 0, 1]
    ])


class SerialArm(Arm):
    """Serial chain of revolute joints with a numpy forward kinematics model."""

    def __init__(
        self,
        joints: Sequence[DHJoint],
        initial_positions: Optional[Sequence[float]] = None,
        tool_transform: Optional[np.ndarray] = None,
    ):
        """Initialize arm.

        Args:
            joints: DH description of every joint, base to tip.
            initial_positions: Starting configuration. Zeros if None.
            tool_transform: Fixed 4x4 transform from the last joint frame to
                            the end effector. Identity if None.
        """
        if not joints:
            raise ValueError("SerialArm needs at least one joint")

        self._joints: List[DHJoint] = list(joints)
        self._tool = np.eye(4) if tool_transform is None else np.asarray(tool_transform, dtype=float)
        self._positions = np.zeros(len(self._joints))

        if initial_positions is not None:
            self.set_joint_positions(initial_positions)

    @property
    def num_joints(self) -> int:
        """Number of joints in the chain."""
        return len(self._joints)

    @property
    def joints(self) -> List[DHJoint]:
        return list(self._joints)

    def joint_positions(self) -> np.ndarray:
        return self._positions.copy()

    def _as_configuration(self, positions: Sequence[float]) -> np.ndarray:
        angles = np.array(positions, dtype=float).reshape(-1)
        if angles.shape[0] != self.num_joints:
            raise DimensionMismatchError(self.num_joints, angles.shape[0])
        return angles

    def set_joint_positions(self, positions: Sequence[float]) -> None:
        angles = self._as_configuration(positions)
        for i, (joint, value) in enumerate(zip(self._joints, angles)):
            if not joint.limit.contains(value):
                raise JointLimitError(i, float(value), joint.limit)
        self._positions = angles

    def set_joint_positions_unchecked(self, positions: Sequence[float]) -> None:
        # Length is structural and still enforced
        self._positions = self._as_configuration(positions)

    def iter_joint_limits(self) -> Iterator[JointLimit]:
        return iter([joint.limit for joint in self._joints])

    def _frames(self, angles: np.ndarray) -> List[np.ndarray]:
        frames = [np.eye(4)]
        T = np.eye(4)
        for joint, q in zip(self._joints, angles):
            T = T @ dh_transform(joint.alpha, joint.a, joint.d, q + joint.theta_offset)
            frames.append(T)
        frames.append(T @ self._tool)
        return frames

    def forward_kinematics(self, angles: Optional[Sequence[float]] = None) -> np.ndarray:
        """Compute the end-effector transform.

        Args:
            angles: Joint angles in radians. Uses the current configuration
                    if None.

        Returns:
            4x4 transformation matrix of the end effector.
        """
        q = self._positions if angles is None else self._as_configuration(angles)
        return self._frames(q)[-1].copy()

    def end_effector_pose(self) -> Pose:
        return Pose.from_matrix(self.forward_kinematics())

    def link_positions(self, angles: Optional[Sequence[float]] = None) -> np.ndarray:
        """3D positions of the base, every joint frame, and the end effector."""
        q = self._positions if angles is None else self._as_configuration(angles)
        return np.array([frame[:3, 3] for frame in self._frames(q)])


# Six-axis geometry of the AgileX Piper (firmware >= S-V1.6-3)
# Format: (alpha, a, d, theta_offset)
SIX_AXIS_DH_PARAMS = [
    (0.0, 0.0, 0.123, 0.0),
    (-np.pi / 2, 0.0, 0.0, np.radians(-172.22)),
    (0.0, 0.28503, 0.0, np.radians(-102.78)),
    (np.pi / 2, -0.021984, 0.25075, 0.0),
    (-np.pi / 2, 0.0, 0.0, 0.0),
    (np.pi / 2, 0.0, 0.091, 0.0),
]

SIX_AXIS_JOINT_LIMITS = [
    JointLimit(-2.618, 2.618),
    JointLimit(0.0, 3.14),
    JointLimit(-2.967, 0.0),
    JointLimit(-1.745, 1.745),
    JointLimit(-1.22, 1.22),
    JointLimit.continuous_joint(),  # wrist roll
]


def create_six_axis_arm(initial_positions: Optional[Sequence[float]] = None) -> SerialArm:
    """Factory function to create a six-axis arm.

    Args:
        initial_positions: Starting joint angles. Zeros if None.

    Returns:
        SerialArm with six revolute joints, the last one continuous.
    """
    joints = [
        DHJoint(alpha=alpha, a=a, d=d, theta_offset=offset, limit=limit)
        for (alpha, a, d, offset), limit in zip(SIX_AXIS_DH_PARAMS, SIX_AXIS_JOINT_LIMITS)
    ]
    return SerialArm(joints, initial_positions=initial_positions)
