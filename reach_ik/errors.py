"""Exceptions raised by the IK solvers and arm models.

Two kinds of failure are kept apart:

- ``NotConvergedError``: the numeric solve did not reach the target. This is
  an expected outcome; callers retry, relax constraints, or skip the target.
- ``StructuralError``: the inputs are malformed (wrong configuration length,
  a bounded joint set outside its limits). These are never retried.
"""

from typing import Optional

import numpy as np


class IKError(Exception):
    """Base class for all errors raised by reach_ik."""


class NotConvergedError(IKError):
    """IK did not converge to the target pose."""

    def __init__(
        self,
        attempts_tried: int,
        position_residual: Optional[np.ndarray] = None,
        rotation_residual: Optional[np.ndarray] = None,
    ):
        self.attempts_tried = attempts_tried
        self.position_residual = (
            np.zeros(3) if position_residual is None
            else np.asarray(position_residual, dtype=float)
        )
        self.rotation_residual = (
            np.zeros(3) if rotation_residual is None
            else np.asarray(rotation_residual, dtype=float)
        )
        super().__init__(
            f"IK not converged after {attempts_tried} attempt(s): "
            f"position residual {np.linalg.norm(self.position_residual):.6f}m, "
            f"rotation residual {np.linalg.norm(self.rotation_residual):.6f}rad"
        )


class StructuralError(IKError, ValueError):
    """Malformed input to a solver or arm; signals misconfiguration."""


class DimensionMismatchError(StructuralError):
    """A joint configuration has the wrong number of entries."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Expected {expected} joint values, got {actual}"
        )


class JointLimitError(StructuralError):
    """A bounded joint was set outside of its limits."""

    def __init__(self, joint_index: int, value: float, limit):
        self.joint_index = joint_index
        self.value = value
        self.limit = limit
        super().__init__(
            f"Joint {joint_index} value {value:.6f} outside "
            f"[{limit.min:.6f}, {limit.max:.6f}]"
        )
