from typing import TypeAlias, Tuple
from dataclasses import dataclass, field
import numpy as np
import numpy.typing as npt


# Buffer Types
# Tight-packed wide-range samples: Y plane, then U and V quarter planes
WideBuffer: TypeAlias = npt.NDArray[np.int16]
# Strided 8-bit planar YUV420 (stride * height * 3 / 2 bytes)
PackedBuffer: TypeAlias = npt.NDArray[np.uint8]
# Dense lookup table produced from a piecewise-linear curve
Lut: TypeAlias = npt.NDArray[np.float64]

# (red, blue)
ColourGains: TypeAlias = Tuple[float, float]

# Largest sample value an 8-bit frame contributes, plus one
FRAME_RANGE = 256
# Chroma value denoting a neutral (grey) sample in 8-bit buffers
CHROMA_NEUTRAL = 128


@dataclass(frozen=True)
class FrameGeometry:
    """
    Shape of a planar YUV420 buffer. Width and height must be even.
    """

    width: int
    height: int
    stride: int

    @property
    def packed_size(self) -> int:
        return self.stride * self.height * 3 // 2

    @property
    def luma_size(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class FrameMetadata:
    """
    Exposure/metering metadata reported alongside a captured frame.
    """

    exposure_time: float = 0.0  # microseconds
    analogue_gain: float = 1.0
    digital_gain: float = 1.0
    colour_gains: ColourGains = (1.0, 1.0)


@dataclass(frozen=True)
class RawFrame:
    """
    One 8-bit planar YUV420 frame as delivered by the capture collaborator.
    """

    data: PackedBuffer
    geometry: FrameGeometry
    metadata: FrameMetadata = field(default_factory=FrameMetadata)


@dataclass(frozen=True)
class CaptureSettings:
    """
    Exposure settings requested for the still burst.
    """

    exposure_time: int
    analogue_gain: float
    colour_gains: ColourGains
