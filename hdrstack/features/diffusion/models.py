from dataclasses import dataclass, field
from hdrstack.kernel.curve.pwl import Pwl, as_pwl

# Neighbour weights e^(-d^2/100) for quantised differences 0..30
WEIGHT_TABLE_SIZE = 31
# Border pixels this close to an edge are left at zero
BORDER_SIZE = 1


def _default_threshold() -> Pwl:
    return Pwl([(0, 10), (2048, 2048 * 0.1), (4095, 2048 * 0.1)])


@dataclass(frozen=True)
class LpFilterConfig:
    """
    Edge-preserving low-pass filter parameters.

    strength weights a pixel's own value against its neighbours; threshold maps
    a pixel value to the difference treated as "one unit" when weighting
    neighbours.
    """

    strength: float = 0.2
    threshold: Pwl = field(default_factory=_default_threshold)

    def __post_init__(self) -> None:
        object.__setattr__(self, "threshold", as_pwl(self.threshold))
