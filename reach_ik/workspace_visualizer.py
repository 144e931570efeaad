"""3D visualization of reachable workspace samples using matplotlib."""

from typing import Optional, Sequence
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from mpl_toolkits.mplot3d import Axes3D

from .pose import Pose


POINT_COLOR = '#4dabf7'
BACKGROUND_COLOR = '#1a1a1a'


def _style_axes(ax) -> None:
    ax.set_facecolor(BACKGROUND_COLOR)
    ax.xaxis.pane.fill = False
    ax.yaxis.pane.fill = False
    ax.zaxis.pane.fill = False
    ax.xaxis.pane.set_edgecolor('#333333')
    ax.yaxis.pane.set_edgecolor('#333333')
    ax.zaxis.pane.set_edgecolor('#333333')

    ax.grid(True, alpha=0.3)
    ax.set_xlabel('X (m)', color='white', fontsize=8)
    ax.set_ylabel('Y (m)', color='white', fontsize=8)
    ax.set_zlabel('Z (m)', color='white', fontsize=8)
    ax.tick_params(colors='white', labelsize=6)
    ax.view_init(elev=25, azim=45)


def plot_reachable_poses(
    poses: Sequence[Pose],
    ax=None,
    title: str = "Reachable workspace",
) -> Figure:
    """Scatter the translation of every pose in 3D.

    Args:
        poses: Poses returned by the workspace sampler.
        ax: Existing 3D axes to draw into. A new figure is created if None.
        title: Axes title.

    Returns:
        The figure holding the plot.
    """
    if ax is None:
        fig = plt.figure(figsize=(6, 6), dpi=100)
        fig.patch.set_facecolor(BACKGROUND_COLOR)
        ax = fig.add_subplot(111, projection='3d')
    else:
        fig = ax.figure

    _style_axes(ax)

    points = np.array([pose.translation for pose in poses]).reshape(-1, 3)
    if len(points):
        ax.scatter(points[:, 0], points[:, 1], points[:, 2], c=POINT_COLOR, s=8, depthshade=True)

    ax.set_title(f"{title} ({len(points)} poses)", color='white', fontsize=10)
    return fig


def save_reachable_plot(poses: Sequence[Pose], path: str, title: Optional[str] = None) -> None:
    """Render the reachable poses to an image file."""
    fig = plot_reachable_poses(poses, title=title or "Reachable workspace")
    FigureCanvasAgg(fig)
    fig.savefig(path, facecolor=fig.get_facecolor())
    plt.close(fig)
