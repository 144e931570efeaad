"""Reachable workspace sampling over a 3D grid of target positions."""

import argparse
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Optional, Sequence
import numpy as np

from .arm import Arm, create_six_axis_arm
from .errors import NotConvergedError
from .inverse_kinematics import Constraints, IKEngine, LeastSquaresIKEngine, RestartingIKSolver
from .pose import Pose


def grid_points(start: float, stop: float, step: float) -> np.ndarray:
    """Half-open grid ``[start, start + step, ...)`` strictly below ``stop``.

    The number of points is computed once as ``ceil((stop - start) / step)``,
    snapping quotients within 1e-9 of an integer to that integer, and points
    are ``start + i * step``. This keeps counts independent of floating point
    accumulation: ``stop`` itself is never included.
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")

    span = (stop - start) / step
    if span <= 0:
        return np.empty(0)

    nearest = round(span)
    if abs(span - nearest) <= 1e-9 * max(1.0, abs(span)):
        count = int(nearest)
    else:
        count = int(np.ceil(span))
    return start + step * np.arange(count)


@dataclass
class WorkspaceConfig:
    """Configuration for reachable workspace sampling."""

    # Grid box (meters), lower corner included, upper corner excluded
    min_point: tuple[float, float, float] = (0.0, -0.9, 0.0)
    max_point: tuple[float, float, float] = (0.8, 0.9, 0.9)

    # Grid spacing (meters)
    step: float = 0.1

    # IK attempts per grid point (1 = plain engine, no random restarts)
    num_max_try: int = 3

    # Worker threads (None = let the executor decide)
    max_workers: Optional[int] = None

    # Seed for restart configurations
    seed: Optional[int] = None


class WorkspaceSampler:
    """Finds the grid points an arm can reach with a given IK solver.

    Z-slices of the grid are solved in parallel. Each slice works on its own
    copy of the arm and, when the solver can ``spawn`` children, on its own
    solver, so results do not depend on the number of workers.

    The first structural error from any slice is re-raised. Slices that have
    not started are cancelled and running slices stop at their next grid point.

    Workers are threads. The numpy and scipy kernels release the GIL, but the
    forward kinematics and residual code around them is Python, so speedup
    with ``LeastSquaresIKEngine`` is well below the number of workers.
    """

    def __init__(
        self,
        solver: IKEngine,
        max_workers: Optional[int] = None,
        verbose: bool = False,
    ):
        """Initialize workspace sampler.

        Args:
            solver: IK engine or RestartingIKSolver run at every grid point.
            max_workers: Worker threads. Executor default if None.
            verbose: If True, print grid size and per-slice results.
        """
        self.solver = solver
        self.max_workers = max_workers
        self.verbose = verbose

    @classmethod
    def from_config(
        cls,
        engine: IKEngine,
        config: Optional[WorkspaceConfig] = None,
        verbose: bool = False,
    ) -> "WorkspaceSampler":
        """Build a sampler, wrapping ``engine`` in restarts if configured."""
        config = config or WorkspaceConfig()
        solver = engine
        if config.num_max_try > 1:
            solver = RestartingIKSolver(
                engine,
                config.num_max_try,
                seed=config.seed,
                verbose=verbose,
            )
        return cls(solver, max_workers=config.max_workers, verbose=verbose)

    def _slice_solvers(self, n: int) -> list:
        spawn = getattr(self.solver, "spawn", None)
        if spawn is None:
            return [self.solver] * n
        return spawn(n)

    def _sample_slice(
        self,
        solver: IKEngine,
        arm: Arm,
        initial_angles: np.ndarray,
        reference_pose: Pose,
        constraints: Optional[Constraints],
        z: float,
        ys: np.ndarray,
        xs: np.ndarray,
        stop: Optional[threading.Event] = None,
    ) -> List[Pose]:
        solved = []
        for y in ys:
            for x in xs:
                if stop is not None and stop.is_set():
                    return solved
                # Known-good reset, not a candidate solution
                arm.set_joint_positions_unchecked(initial_angles)
                target = reference_pose.with_translation(x, y, z)
                try:
                    solver.solve(arm, target, constraints)
                except NotConvergedError:
                    continue
                solved.append(target)

        if self.verbose:
            print(f"[WorkspaceSampler] z={z:.3f}: {len(solved)}/{len(ys) * len(xs)} reachable")
        return solved

    def sample_reachable(
        self,
        arm: Arm,
        reference_pose: Pose,
        constraints: Optional[Constraints],
        min_point: Sequence[float],
        max_point: Sequence[float],
        step: float,
    ) -> List[Pose]:
        """Solve IK at every point of a grid and collect the reachable poses.

        Args:
            arm: Arm to solve with. Not modified: every slice works on a clone
                 reset to this arm's configuration before each grid point.
            reference_pose: Orientation used for every target.
            constraints: Passed to the solver unchanged.
            min_point: Lower corner (x, y, z) of the box, included.
            max_point: Upper corner (x, y, z) of the box, excluded.
            step: Grid spacing in meters.

        Returns:
            Target poses the solver converged on, in z, y, x grid order.
        """
        xs = grid_points(min_point[0], max_point[0], step)
        ys = grid_points(min_point[1], max_point[1], step)
        zs = grid_points(min_point[2], max_point[2], step)

        if self.verbose:
            print(f"[WorkspaceSampler] Grid {len(xs)}x{len(ys)}x{len(zs)} = "
                  f"{len(xs) * len(ys) * len(zs)} points")

        if len(zs) == 0:
            return []

        initial_angles = arm.joint_positions()
        solvers = self._slice_solvers(len(zs))

        stop = threading.Event()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(
                    self._sample_slice,
                    solver,
                    arm.clone(),
                    initial_angles,
                    reference_pose,
                    constraints,
                    float(z),
                    ys,
                    xs,
                    stop,
                )
                for solver, z in zip(solvers, zs)
            ]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [future for future in futures if future in done and future.exception() is not None]
            if failed:
                # Queued slices are dropped, running ones stop at their next grid point
                stop.set()
                executor.shutdown(wait=False, cancel_futures=True)
                if self.verbose:
                    print(f"[WorkspaceSampler] ✗ Slice failed: {failed[0].exception()}")
                raise failed[0].exception()
            slices = [future.result() for future in futures]

        solved_poses = [pose for solved in slices for pose in solved]
        if self.verbose:
            print(f"[WorkspaceSampler] {len(solved_poses)} reachable poses")
        return solved_poses


def sample_reachable(
    solver: IKEngine,
    arm: Arm,
    reference_pose: Pose,
    constraints: Optional[Constraints],
    min_point: Sequence[float],
    max_point: Sequence[float],
    step: float,
    max_workers: Optional[int] = None,
) -> List[Pose]:
    """Check the poses which can be reached by the arm.

    See ``WorkspaceSampler.sample_reachable``.
    """
    sampler = WorkspaceSampler(solver, max_workers=max_workers)
    return sampler.sample_reachable(
        arm, reference_pose, constraints, min_point, max_point, step
    )


def main():
    """Main entry point."""
    defaults = WorkspaceConfig()
    parser = argparse.ArgumentParser(description="Sample the reachable workspace of a six-axis arm")
    parser.add_argument("--min", type=float, nargs=3, default=list(defaults.min_point),
                        metavar=("X", "Y", "Z"), help="Lower corner of the box (m)")
    parser.add_argument("--max", type=float, nargs=3, default=list(defaults.max_point),
                        metavar=("X", "Y", "Z"), help="Upper corner of the box (m, excluded)")
    parser.add_argument("--step", type=float, default=defaults.step, help="Grid spacing (m)")
    parser.add_argument("--max-tries", type=int, default=defaults.num_max_try,
                        help="IK attempts per grid point")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads")
    parser.add_argument("--seed", type=int, default=None, help="Seed for random restarts")
    parser.add_argument("--position-only", action="store_true",
                        help="Ignore orientation of the reference pose")
    parser.add_argument("--plot", type=str, default=None, help="Save a 3D scatter plot to this path")
    parser.add_argument("--verbose", action="store_true", help="Print solver debug info")
    args = parser.parse_args()

    config = WorkspaceConfig(
        min_point=tuple(args.min),
        max_point=tuple(args.max),
        step=args.step,
        num_max_try=args.max_tries,
        max_workers=args.workers,
        seed=args.seed,
    )

    arm = create_six_axis_arm()
    reference_pose = arm.end_effector_pose()
    constraints = Constraints(ignore_rotation=args.position_only)

    sampler = WorkspaceSampler.from_config(LeastSquaresIKEngine(), config, verbose=args.verbose)
    poses = sampler.sample_reachable(
        arm, reference_pose, constraints, config.min_point, config.max_point, config.step
    )
    print(f"Reachable poses: {len(poses)}")

    if args.plot:
        from .workspace_visualizer import save_reachable_plot
        save_reachable_plot(poses, args.plot)
        print(f"Saved plot to {args.plot}")


if __name__ == "__main__":
    main()
