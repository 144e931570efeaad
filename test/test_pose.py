"""Tests for poses and rotation helpers."""

import numpy as np
import pytest

from reach_ik.pose import Pose, euler_to_rotation, rotation_error


def rot_z(angle):
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])


def rot_x(angle):
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[1, 0, 0], [0, c, -s], [0, s, c]])


def test_euler_yaw_only():
    np.testing.assert_allclose(euler_to_rotation([0.0, 0.0, 0.7]), rot_z(0.7), atol=1e-12)


def test_rotation_error_identity():
    r = euler_to_rotation([0.3, -0.2, 1.1])
    np.testing.assert_allclose(rotation_error(r, r), np.zeros(3), atol=1e-9)


def test_rotation_error_about_z():
    np.testing.assert_allclose(rotation_error(rot_z(0.3), np.eye(3)), [0.0, 0.0, 0.3], atol=1e-9)
    np.testing.assert_allclose(rotation_error(np.eye(3), rot_z(0.3)), [0.0, 0.0, -0.3], atol=1e-9)


def test_rotation_error_half_turn():
    error = rotation_error(rot_x(np.pi), np.eye(3))
    assert np.linalg.norm(error) == pytest.approx(np.pi)
    np.testing.assert_allclose(np.abs(error), [np.pi, 0.0, 0.0], atol=1e-6)


def test_with_translation_keeps_orientation():
    pose = Pose.from_euler([0.1, 0.2, 0.3], [0.0, 0.5, 0.0])
    moved = pose.with_translation(1.0, -2.0, 3.0)
    np.testing.assert_array_equal(moved.translation, [1.0, -2.0, 3.0])
    np.testing.assert_array_equal(moved.rotation, pose.rotation)
    # Original untouched
    np.testing.assert_array_equal(pose.translation, [0.1, 0.2, 0.3])


def test_matrix_conversion():
    matrix = np.eye(4)
    matrix[:3, :3] = rot_z(0.4)
    matrix[:3, 3] = [0.5, 0.6, 0.7]
    np.testing.assert_array_equal(Pose.from_matrix(matrix).to_matrix(), matrix)


def test_equality_and_hash():
    a = Pose(translation=[0.1, 0.2, 0.3])
    b = Pose(translation=np.array([0.1, 0.2, 0.3]))
    assert a == b
    assert len({a, b}) == 1
    assert a != a.with_translation(0.0, 0.0, 0.0)
