"""Tests for reachable workspace sampling."""

import threading
import time

import numpy as np
import pytest

from reach_ik.arm import create_six_axis_arm
from reach_ik.errors import DimensionMismatchError, NotConvergedError
from reach_ik.inverse_kinematics import IKEngine, LeastSquaresIKEngine, RestartingIKSolver
from reach_ik.workspace import WorkspaceConfig, WorkspaceSampler, grid_points, sample_reachable


MIN_POINT = (0.0, -0.9, 0.0)
MAX_POINT = (0.8, 0.9, 0.9)
STEP = 0.1


class BoxEngine(IKEngine):
    """Deterministic engine that reaches a fixed box of targets."""

    def __init__(self):
        self._lock = threading.Lock()
        self.calls = 0
        self.starts = []

    def solve(self, arm, target_pose, constraints=None):
        with self._lock:
            self.calls += 1
            self.starts.append(arm.joint_positions())
        x, y, z = target_pose.translation
        if x <= 0.25 and abs(y) <= 0.25 and z >= 0.55:
            # Move somewhere else so the next reset is observable
            arm.set_joint_positions_unchecked(arm.joint_positions() + 0.1)
            return
        raise NotConvergedError(attempts_tried=1)


class StartDependentEngine(IKEngine):
    """Converges only from some starting configurations."""

    def solve(self, arm, target_pose, constraints=None):
        start = arm.joint_positions()
        if start[0] + target_pose.translation[0] > 0.5:
            return
        raise NotConvergedError(attempts_tried=1)


class BrokenEngine(IKEngine):
    def solve(self, arm, target_pose, constraints=None):
        raise DimensionMismatchError(6, 5)


class FirstSliceBrokenEngine(IKEngine):
    """Structural failure on the z=0 slice, slow non-convergence elsewhere."""

    def __init__(self):
        self._lock = threading.Lock()
        self.calls = 0

    def solve(self, arm, target_pose, constraints=None):
        with self._lock:
            self.calls += 1
        if target_pose.translation[2] < 0.05:
            raise DimensionMismatchError(6, 5)
        time.sleep(0.001)
        raise NotConvergedError(attempts_tried=1)


def test_grid_counts():
    assert len(grid_points(0.0, 0.8, 0.1)) == 8
    assert len(grid_points(-0.9, 0.9, 0.1)) == 18
    assert len(grid_points(0.0, 0.9, 0.1)) == 9
    assert len(grid_points(0.0, 0.3, 0.1)) == 3
    assert len(grid_points(0.0, 0.35, 0.1)) == 4


def test_grid_excludes_stop():
    points = grid_points(0.0, 1.0, 0.25)
    np.testing.assert_allclose(points, [0.0, 0.25, 0.5, 0.75])
    assert points[0] == 0.0


def test_grid_edge_cases():
    assert len(grid_points(1.0, 1.0, 0.1)) == 0
    assert len(grid_points(1.0, 0.0, 0.1)) == 0
    with pytest.raises(ValueError):
        grid_points(0.0, 1.0, 0.0)
    with pytest.raises(ValueError):
        grid_points(0.0, 1.0, -0.1)


def test_scenario_box():
    engine = BoxEngine()
    arm = create_six_axis_arm()
    reference = arm.end_effector_pose()

    poses = sample_reachable(engine, arm, reference, None, MIN_POINT, MAX_POINT, STEP)

    assert engine.calls == 8 * 18 * 9
    # 3 x values, 5 y values, 3 z values
    assert len(poses) == 45
    for pose in poses:
        assert all(lo <= v < hi for lo, v, hi in zip(MIN_POINT, pose.translation, MAX_POINT))
        np.testing.assert_array_equal(pose.rotation, reference.rotation)


def test_every_point_starts_from_initial_configuration():
    engine = BoxEngine()
    arm = create_six_axis_arm([0.1, 0.2, -0.3, 0.0, 0.1, 0.0])
    initial = arm.joint_positions()

    sample_reachable(engine, arm, arm.end_effector_pose(), None, MIN_POINT, MAX_POINT, STEP, max_workers=3)

    for start in engine.starts:
        np.testing.assert_array_equal(start, initial)
    # Caller's arm is never touched
    np.testing.assert_array_equal(arm.joint_positions(), initial)


@pytest.mark.parametrize("max_workers", [2, 5])
def test_result_independent_of_worker_count(max_workers):
    arm = create_six_axis_arm()
    reference = arm.end_effector_pose()

    def run(workers):
        solver = RestartingIKSolver(StartDependentEngine(), num_max_try=3, seed=7)
        sampler = WorkspaceSampler(solver, max_workers=workers)
        poses = sampler.sample_reachable(arm, reference, None, MIN_POINT, MAX_POINT, STEP)
        return [tuple(pose.translation) for pose in poses]

    serial = run(1)
    assert 0 < len(serial) < 8 * 18 * 9
    assert run(max_workers) == serial
    assert set(run(max_workers)) == set(serial)


def test_structural_error_propagates():
    arm = create_six_axis_arm()
    with pytest.raises(DimensionMismatchError):
        sample_reachable(BrokenEngine(), arm, arm.end_effector_pose(), None, MIN_POINT, MAX_POINT, STEP)


def test_structural_error_cancels_remaining_slices():
    engine = FirstSliceBrokenEngine()
    arm = create_six_axis_arm()
    sampler = WorkspaceSampler(engine, max_workers=1)

    with pytest.raises(DimensionMismatchError):
        sampler.sample_reachable(arm, arm.end_effector_pose(), None, MIN_POINT, MAX_POINT, STEP)

    # 9 slices of 144 points, the failing slice is first in line
    assert engine.calls < 1 + 8 * 18


def test_empty_box():
    engine = BoxEngine()
    arm = create_six_axis_arm()
    poses = sample_reachable(engine, arm, arm.end_effector_pose(), None, (0.0, 0.0, 0.5), (1.0, 1.0, 0.5), STEP)
    assert poses == []
    assert engine.calls == 0


def test_from_config():
    engine = LeastSquaresIKEngine()

    plain = WorkspaceSampler.from_config(engine, WorkspaceConfig(num_max_try=1, max_workers=2))
    assert plain.solver is engine
    assert plain.max_workers == 2

    restarting = WorkspaceSampler.from_config(engine, WorkspaceConfig(num_max_try=4, seed=1))
    assert isinstance(restarting.solver, RestartingIKSolver)
    assert restarting.solver.engine is engine
    assert restarting.solver.num_max_try == 4


def test_least_squares_region_is_inside_box():
    arm = create_six_axis_arm([0.0, 1.0, -1.0, 0.0, 0.5, 0.0])
    reference = arm.end_effector_pose()
    solver = RestartingIKSolver(LeastSquaresIKEngine(), num_max_try=2, seed=0)
    x0, y0, z0 = reference.translation
    min_point = (x0 - 0.05, y0 - 0.05, z0 - 0.05)
    max_point = (x0 + 0.05, y0 + 0.05, z0 + 0.05)

    poses = WorkspaceSampler(solver, max_workers=2).sample_reachable(
        arm, reference, None, min_point, max_point, 0.05
    )

    # 2 x 2 x 2 grid whose upper grid point is the reference pose itself
    assert 1 <= len(poses) <= 8
    for pose in poses:
        assert all(lo <= v < hi for lo, v, hi in zip(min_point, pose.translation, max_point))
