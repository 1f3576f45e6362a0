from dataclasses import dataclass, field
from hdrstack.kernel.curve.pwl import Pwl, as_pwl


def _default_exposure_adjust() -> Pwl:
    return Pwl([(0, 2.0), (2.0, 1.5), (8.0, 1.0)])


@dataclass(frozen=True)
class MeteringConfig:
    """
    Preview warm-up and exposure metering for the still burst.
    """

    preview_frames: int = 60
    metering_quantile: float = 0.1
    # Maps the metering frame's low quantile to an exposure multiplier
    exposure_adjust: Pwl = field(default_factory=_default_exposure_adjust)
    save_short: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "exposure_adjust", as_pwl(self.exposure_adjust))
