"""Inverse kinematics solvers.

``LeastSquaresIKEngine`` runs a single local solve from the arm's current
joint configuration. ``RestartingIKSolver`` wraps any engine and retries
from random configurations until one attempt converges.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import numpy as np

from scipy.optimize import least_squares

from .arm import Arm
from .errors import DimensionMismatchError, NotConvergedError
from .joint_limits import RandomConfigurationSampler, resolve_nearest_angles
from .pose import Pose, rotation_error


@dataclass
class Constraints:
    """Tolerances and behaviour of a single IK solve."""

    # Maximum position error (meters) accepted as converged
    position_tolerance: float = 1e-4

    # Maximum rotation error (radians) accepted as converged
    rotation_tolerance: float = 1e-3

    # Position-only IK: orientation of the target is ignored
    ignore_rotation: bool = False

    # Residual evaluations allowed per solve
    max_evaluations: int = 200

    # Weight of the rotation residual relative to position (m/rad)
    rotation_weight: float = 0.1


class IKEngine(ABC):
    """Abstract interface for IK solvers.

    ``solve`` moves ``arm`` to a configuration reaching ``target_pose`` and
    returns None, or raises ``NotConvergedError``. Structural problems raise
    ``StructuralError`` subclasses.
    """

    @abstractmethod
    def solve(
        self,
        arm: Arm,
        target_pose: Pose,
        constraints: Optional[Constraints] = None,
    ) -> None:
        pass

    def solve_position(
        self,
        arm: Arm,
        position: np.ndarray,
        constraints: Optional[Constraints] = None,
    ) -> None:
        """Solve for a position, keeping the arm's current orientation."""
        target = arm.end_effector_pose().with_translation(*np.asarray(position, dtype=float))
        self.solve(arm, target, constraints)


class LeastSquaresIKEngine(IKEngine):
    """Single-shot IK using bounded nonlinear least squares.

    Starts from the arm's current configuration. Bounded joints are kept in
    their limits, continuous joints are unbounded, and locked joints
    (``min == max``) are held at their single value.
    """

    def __init__(self, verbose: bool = False):
        """Initialize engine.

        Args:
            verbose: If True, print debug info for every solve.
        """
        self.verbose = verbose

    def _residuals(self, arm: Arm, target_pose: Pose):
        pose = arm.end_effector_pose()
        position_residual = target_pose.translation - pose.translation
        rotation_residual = rotation_error(target_pose.rotation, pose.rotation)
        return position_residual, rotation_residual

    def solve(
        self,
        arm: Arm,
        target_pose: Pose,
        constraints: Optional[Constraints] = None,
    ) -> None:
        constraints = constraints or Constraints()

        seed = arm.joint_positions()
        limits = list(arm.iter_joint_limits())
        if len(seed) != len(limits):
            raise DimensionMismatchError(len(limits), len(seed))

        lower = np.array([-np.inf if l.continuous else l.min for l in limits])
        upper = np.array([np.inf if l.continuous else l.max for l in limits])
        # Locked joints (min == max) stay out of the optimization variables
        free = lower < upper
        start = np.clip(seed, lower, upper)

        def expand(x: np.ndarray) -> np.ndarray:
            q = start.copy()
            q[free] = x
            return q

        def residual(x: np.ndarray) -> np.ndarray:
            arm.set_joint_positions_unchecked(expand(x))
            position_residual, rotation_residual = self._residuals(arm, target_pose)
            if constraints.ignore_rotation:
                return position_residual
            return np.concatenate([
                position_residual,
                constraints.rotation_weight * rotation_residual,
            ])

        if free.any():
            result = least_squares(
                residual,
                start[free],
                bounds=(lower[free], upper[free]),
                xtol=1e-12,
                ftol=1e-12,
                gtol=1e-12,
                max_nfev=constraints.max_evaluations,
            )
            solution = expand(np.clip(result.x, lower[free], upper[free]))
            evaluations = result.nfev
        else:
            solution = start
            evaluations = 0

        arm.set_joint_positions_unchecked(solution)
        position_residual, rotation_residual = self._residuals(arm, target_pose)

        converged = np.linalg.norm(position_residual) <= constraints.position_tolerance
        if not constraints.ignore_rotation:
            converged = converged and np.linalg.norm(rotation_residual) <= constraints.rotation_tolerance

        if converged:
            arm.set_joint_positions(solution)
            if self.verbose:
                print(f"[LeastSquaresIK] ✓ Converged in {evaluations} evaluations")
            return

        # Leave the arm where the caller put it
        arm.set_joint_positions_unchecked(seed)
        if self.verbose:
            print(f"[LeastSquaresIK] ✗ Not converged | "
                  f"Position: {np.linalg.norm(position_residual):.4f}m | "
                  f"Rotation: {np.linalg.norm(rotation_residual):.4f}rad")
        raise NotConvergedError(
            attempts_tried=1,
            position_residual=position_residual,
            rotation_residual=np.zeros(3) if constraints.ignore_rotation else rotation_residual,
        )


class RestartingIKSolver(IKEngine):
    """Retries an IK engine from random configurations.

    The first attempt starts from the arm's current configuration. After each
    failure, a random configuration is drawn, its continuous joints are
    wrapped toward the configuration the arm had before the call, and it is
    used as the next starting point. The first success wins.

    If every attempt fails, the arm is restored to its configuration before
    the call and the failure of the last attempt is raised.
    """

    def __init__(
        self,
        engine: IKEngine,
        num_max_try: int,
        sampler: Optional[RandomConfigurationSampler] = None,
        seed: Optional[int] = None,
        verbose: bool = False,
    ):
        """Initialize solver.

        Args:
            engine: Single-shot IK engine run on every attempt.
            num_max_try: Number of attempts, at least 1.
            sampler: Source of restart configurations. Created from ``seed``
                     if None.
            seed: Seed for the default sampler.
            verbose: If True, print every attempt.
        """
        if num_max_try < 1:
            raise ValueError(f"num_max_try must be at least 1, got {num_max_try}")

        self.engine = engine
        self.num_max_try = num_max_try
        self.sampler = sampler if sampler is not None else RandomConfigurationSampler(seed=seed)
        self.verbose = verbose

    def solve(
        self,
        arm: Arm,
        target_pose: Pose,
        constraints: Optional[Constraints] = None,
    ) -> None:
        if self.verbose:
            print(f"[RestartingIK] Target: {target_pose.translation.round(4)}")

        limits = list(arm.iter_joint_limits())
        initial_angles = arm.joint_positions()
        if len(initial_angles) != len(limits):
            raise DimensionMismatchError(len(limits), len(initial_angles))

        failure = None
        try:
            for try_idx in range(self.num_max_try):
                if self.verbose:
                    print(f"[RestartingIK] Attempt {try_idx + 1}/{self.num_max_try} from "
                          f"{arm.joint_positions().round(4)}")
                try:
                    self.engine.solve(arm, target_pose, constraints)
                except NotConvergedError as e:
                    failure = e
                    if self.verbose:
                        print(f"[RestartingIK] ✗ Attempt {try_idx + 1}: {e}")
                else:
                    if self.verbose:
                        print(f"[RestartingIK] ✓ Solved: {arm.joint_positions().round(4)}")
                    return

                if try_idx + 1 < self.num_max_try:
                    new_angles = self.sampler.sample(limits)
                    resolve_nearest_angles(initial_angles, new_angles, limits)
                    # Restart seeds may leave the soft range of continuous joints
                    arm.set_joint_positions_unchecked(new_angles)
        except BaseException:
            # Structural and unexpected errors abort the retries
            arm.set_joint_positions_unchecked(initial_angles)
            raise

        if self.verbose:
            print(f"[RestartingIK] Failed after {self.num_max_try} tries. "
                  f"Restoring {initial_angles.round(4)}")
        arm.set_joint_positions_unchecked(initial_angles)
        raise failure

    def spawn(self, n: int) -> list:
        """Create ``n`` solvers sharing the engine, each with its own sampler."""
        return [
            RestartingIKSolver(
                self.engine,
                self.num_max_try,
                sampler=sampler,
                verbose=self.verbose,
            )
            for sampler in self.sampler.spawn(n)
        ]


def create_restarting_solver(
    num_max_try: int = 10,
    seed: Optional[int] = None,
    verbose: bool = False,
) -> RestartingIKSolver:
    """Factory function to create a restarting least-squares IK solver.

    Args:
        num_max_try: Number of attempts per solve.
        seed: Seed for restart configurations.
        verbose: Enable verbose logging.

    Returns:
        RestartingIKSolver instance.
    """
    return RestartingIKSolver(
        LeastSquaresIKEngine(verbose=verbose),
        num_max_try=num_max_try,
        seed=seed,
        verbose=verbose,
    )
