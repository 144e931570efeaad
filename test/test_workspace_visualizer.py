"""Tests for the reachable workspace plot."""

import matplotlib
matplotlib.use("Agg")

from reach_ik.pose import Pose
from reach_ik.workspace_visualizer import plot_reachable_poses, save_reachable_plot


POSES = [
    Pose(translation=[0.1, 0.0, 0.2]),
    Pose(translation=[0.2, -0.1, 0.3]),
    Pose(translation=[0.3, 0.1, 0.4]),
]


def test_plot_reachable_poses():
    fig = plot_reachable_poses(POSES, title="Test")
    ax = fig.axes[0]
    assert "3 poses" in ax.get_title()
    assert len(ax.collections) == 1


def test_plot_empty():
    fig = plot_reachable_poses([])
    assert "0 poses" in fig.axes[0].get_title()
    assert len(fig.axes[0].collections) == 0


def test_save_reachable_plot(tmp_path):
    path = tmp_path / "workspace.png"
    save_reachable_plot(POSES, str(path))
    assert path.exists()
    assert path.stat().st_size > 0
