from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple
import numpy as np
from hdrstack.domain.types import Lut


class PwlError(ValueError):
    """Raised when a curve would become ill-formed or is evaluated while empty."""


@dataclass(frozen=True)
class Interval:
    start: float
    end: float

    def clip(self, value: float) -> float:
        return min(max(value, self.start), self.end)


class Pwl:
    """
    Piecewise-linear curve over control points strictly increasing in x.

    Evaluation clamps the input to the curve's domain, so the first and last
    points extend flat to either side.
    """

    def __init__(self, points: Iterable[Sequence[float]] = ()):
        self._xs: List[float] = []
        self._ys: List[float] = []
        for x, y in points:
            self.append(x, y)

    def append(self, x: float, y: float, eps: float = 1e-6) -> None:
        x, y = float(x), float(y)
        if self._xs and x <= self._xs[-1] + eps:
            raise PwlError(f"Control point x={x:.6g} does not follow previous x={self._xs[-1]:.6g}")
        self._xs.append(x)
        self._ys.append(y)

    @property
    def points(self) -> List[Tuple[float, float]]:
        return list(zip(self._xs, self._ys))

    def empty(self) -> bool:
        return not self._xs

    def __len__(self) -> int:
        return len(self._xs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pwl):
            return NotImplemented
        return self.points == other.points

    def __repr__(self) -> str:
        return f"Pwl({self.points!r})"

    def domain(self) -> Interval:
        self._check_populated()
        return Interval(self._xs[0], self._xs[-1])

    def eval(self, x: float) -> float:
        self._check_populated()
        # np.interp holds the end values outside [x0, xn]
        return float(np.interp(x, self._xs, self._ys))

    def generate_lut(self, size: int | None = None) -> Lut:
        """
        Evaluates the curve at every integer 0..size-1.
        Defaults to covering the curve's domain, i.e. int(x_n) + 1 entries.
        """
        self._check_populated()
        if size is None:
            size = int(self._xs[-1]) + 1
        return np.interp(np.arange(size, dtype=np.float64), self._xs, self._ys)

    def to_list(self) -> List[List[float]]:
        return [[x, y] for x, y in self.points]

    def _check_populated(self) -> None:
        if not self._xs:
            raise PwlError("Cannot evaluate an empty curve")


def as_pwl(value: "Pwl | Iterable[Sequence[float]]") -> Pwl:
    """Accepts a curve or a list of [x, y] pairs (e.g. from JSON)."""
    if isinstance(value, Pwl):
        return value
    return Pwl(value)
