"""Joint limits, random joint configurations, and nearest-angle repair."""

from dataclasses import dataclass
from typing import Optional, Sequence
import numpy as np

from .errors import DimensionMismatchError, StructuralError


FULL_TURN = 2 * np.pi


@dataclass(frozen=True)
class JointLimit:
    """Bounds of a single joint.

    Continuous joints have no meaningful bound: their angle only matters
    modulo a full turn, and ``min``/``max`` are ignored.
    """

    min: float
    max: float
    continuous: bool = False

    def __post_init__(self):
        if not self.continuous and self.min > self.max:
            raise StructuralError(f"Joint limit min {self.min} is above max {self.max}")

    @classmethod
    def continuous_joint(cls) -> "JointLimit":
        """Limit for a joint that rotates freely."""
        return cls(min=-np.pi, max=np.pi, continuous=True)

    def contains(self, value: float) -> bool:
        """Check whether ``value`` is allowed for this joint."""
        if self.continuous:
            return True
        return self.min <= value <= self.max


def wrap_to_pi(angles):
    """Wrap angles into [-pi, pi)."""
    return np.mod(np.asarray(angles, dtype=float) + np.pi, FULL_TURN) - np.pi


class RandomConfigurationSampler:
    """Draws random joint configurations that respect joint limits.

    Bounded joints are drawn uniformly from [min, max]. Continuous joints are
    drawn uniformly from [-pi, pi).
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """Initialize sampler.

        Args:
            rng: Random generator to draw from. Created from ``seed`` if None.
            seed: Seed for ``numpy.random.default_rng`` when no rng is given.
        """
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    def sample(self, limits: Sequence[JointLimit]) -> np.ndarray:
        """Draw one joint configuration.

        Args:
            limits: Limits of every joint, in chain order.

        Returns:
            Joint angles in radians, one per limit.
        """
        lows = np.array([
            -np.pi if limit.continuous else limit.min for limit in limits
        ], dtype=float)
        highs = np.array([
            np.pi if limit.continuous else limit.max for limit in limits
        ], dtype=float)
        return self._rng.uniform(lows, highs)

    def spawn(self, n: int) -> list:
        """Create ``n`` independent child samplers.

        Children are derived deterministically from this sampler's generator,
        so seeded parents give reproducible children.
        """
        return [RandomConfigurationSampler(rng=child) for child in self._rng.spawn(n)]


def resolve_nearest_angles(
    reference: np.ndarray,
    candidate: np.ndarray,
    limits: Sequence[JointLimit],
) -> np.ndarray:
    """Wrap continuous joints of ``candidate`` toward ``reference`` in place.

    Every continuous joint of ``candidate`` is replaced by the angle that is
    congruent to it modulo a full turn and nearest to the reference angle.
    The result may lie outside the joint's nominal [min, max]. Bounded joints
    are left as they are.

    Args:
        reference: Configuration to wrap toward.
        candidate: Configuration to repair. Modified in place.
        limits: Joint limits in chain order.

    Returns:
        The repaired ``candidate`` array.
    """
    if len(reference) != len(limits):
        raise DimensionMismatchError(len(limits), len(reference))
    if len(candidate) != len(limits):
        raise DimensionMismatchError(len(limits), len(candidate))

    for i, limit in enumerate(limits):
        if not limit.continuous:
            continue
        # Offset from reference, wrapped to [-pi, pi)
        diff = float(wrap_to_pi(candidate[i] - reference[i]))
        candidate[i] = reference[i] + diff

    return candidate
