from dataclasses import dataclass, field
from typing import Optional, Tuple
from hdrstack.kernel.curve.pwl import Pwl, as_pwl


class DegenerateTonemapError(ValueError):
    """
    Raised when histogram quantiles collide so that no well-formed tonemap
    curve can be anchored on them (e.g. flat or near-flat images).
    """

    def __init__(self, message: str, quantiles: Tuple[float, ...] = ()):
        super().__init__(message)
        self.quantiles = quantiles


def _default_q50_curve() -> Pwl:
    return Pwl(
        [
            (0, 400),
            (30, 500),
            (100, 600),
            (200, 800),
            (300, 1000),
            (2048, 2048),
            (4095, 3072),
        ]
    )


def _default_pos_strength() -> Pwl:
    return Pwl([(0, 6.0), (1024, 2.0), (4095, 2.0)])


def _default_neg_strength() -> Pwl:
    return Pwl([(0, 4.0), (1024, 1.5), (4095, 1.5)])


@dataclass(frozen=True)
class ToneCurveConfig:
    """
    How the tonemap curve is anchored on the low-pass histogram.
    """

    fixed_q: float = 0.03  # Quantile left in place to keep shadow contrast
    q50_curve: Pwl = field(default_factory=_default_q50_curve)  # Where the median moves to
    q25_factor: float = 0.667  # Lower quartile target relative to the median target
    min_quantile_gap: float = 0.0  # Anchors must be further apart than this
    fallback_to_linear: bool = True  # Skip tonemapping instead of aborting on degeneracy

    def __post_init__(self) -> None:
        object.__setattr__(self, "q50_curve", as_pwl(self.q50_curve))


@dataclass(frozen=True)
class TonemapConfig:
    """
    Tonemap application parameters. tonemap is synthesised per capture.
    """

    tonemap: Optional[Pwl] = None
    pos_strength: Pwl = field(default_factory=_default_pos_strength)
    neg_strength: Pwl = field(default_factory=_default_neg_strength)

    def __post_init__(self) -> None:
        if self.tonemap is not None:
            object.__setattr__(self, "tonemap", as_pwl(self.tonemap))
        object.__setattr__(self, "pos_strength", as_pwl(self.pos_strength))
        object.__setattr__(self, "neg_strength", as_pwl(self.neg_strength))
