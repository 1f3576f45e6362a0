from dataclasses import dataclass

MAX_FRAMES = 16


@dataclass(frozen=True)
class AccumulateConfig:
    """
    Burst size and the burst size the tuning curves were written for.
    """

    num_frames: int = 8  # 1 to 16 frames
    reference_frames: int = 16

    @property
    def scale_factor(self) -> float:
        return self.reference_frames / self.num_frames
