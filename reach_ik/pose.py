"""Rigid end-effector poses and rotation helpers."""

from dataclasses import dataclass, field
import numpy as np


def euler_to_rotation(euler: np.ndarray) -> np.ndarray:
    """Convert Euler angles (roll, pitch, yaw) to rotation matrix.

    Uses XYZ convention (roll around X, pitch around Y, yaw around Z).
    """
    roll, pitch, yaw = euler

    cr, sr = np.cos(roll), np.sin(roll)
    cp, sp = np.cos(pitch), np.sin(pitch)
    cy, sy = np.cos(yaw), np.sin(yaw)

    # Combined rotation matrix (ZYX order)
    r = np.array([
        [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
        [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
        [-sp, cp * sr, cp * cr],
    ])

    return r


def rotation_error(target: np.ndarray, actual: np.ndarray) -> np.ndarray:
    """Axis-angle vector rotating ``actual`` onto ``target``.

    Both arguments are 3x3 rotation matrices. The returned vector's norm is
    the angle (radians) between the two orientations, expressed in the base
    frame.
    """
    r = target @ actual.T
    cos_angle = np.clip((np.trace(r) - 1.0) / 2.0, -1.0, 1.0)
    angle = np.arccos(cos_angle)
    skew = np.array([
        r[2, 1] - r[1, 2],
        r[0, 2] - r[2, 0],
        r[1, 0] - r[0, 1],
    ])

    if angle < 1e-9:
        return 0.5 * skew

    sin_angle = np.sin(angle)
    if sin_angle > 1e-6:
        return angle / (2.0 * sin_angle) * skew

    # Angle close to pi: recover the axis from the symmetric part
    axis = np.sqrt(np.clip((np.diag(r) + 1.0) / 2.0, 0.0, None))
    k = int(np.argmax(axis))
    for i in range(3):
        if i != k and r[k, i] + r[i, k] < 0:
            axis[i] = -axis[i]
    return angle * axis / np.linalg.norm(axis)


@dataclass
class Pose:
    """Rigid transform of the end effector in the arm's base frame."""

    # Position in meters, shape (3,)
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    # Rotation matrix, shape (3, 3)
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self):
        self.translation = np.asarray(self.translation, dtype=float).reshape(3)
        self.rotation = np.asarray(self.rotation, dtype=float).reshape(3, 3)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Pose":
        """Build a pose from a 4x4 homogeneous transform."""
        matrix = np.asarray(matrix, dtype=float)
        return cls(translation=matrix[:3, 3].copy(), rotation=matrix[:3, :3].copy())

    @classmethod
    def from_euler(cls, position, orientation) -> "Pose":
        """Build a pose from a position and (roll, pitch, yaw) in radians."""
        return cls(translation=position, rotation=euler_to_rotation(orientation))

    def to_matrix(self) -> np.ndarray:
        """Return the 4x4 homogeneous transform."""
        matrix = np.eye(4)
        matrix[:3, :3] = self.rotation
        matrix[:3, 3] = self.translation
        return matrix

    def with_translation(self, x: float, y: float, z: float) -> "Pose":
        """Copy of this pose moved to (x, y, z), same orientation."""
        return Pose(translation=np.array([x, y, z]), rotation=self.rotation.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Pose):
            return NotImplemented
        return (
            np.array_equal(self.translation, other.translation)
            and np.array_equal(self.rotation, other.rotation)
        )

    def __hash__(self) -> int:
        return hash((tuple(self.translation.tolist()), tuple(self.rotation.ravel().tolist())))
