from dataclasses import dataclass
from typing import Tuple
import numpy as np
from hdrstack.domain.types import WideBuffer


@dataclass
class WideImage:
    """
    Wide-range planar image: a width*height luma plane followed, unless the
    image is luma-only, by two quarter-resolution chroma planes (4:2:0).

    Chroma is stored de-biased, 0 being neutral. dynamic_range is one more than
    the largest representable sample and is shared by all planes.
    """

    width: int
    height: int
    pixels: WideBuffer
    dynamic_range: int = 0

    @classmethod
    def allocate(cls, width: int, height: int, with_chroma: bool = True) -> "WideImage":
        size = width * height * 3 // 2 if with_chroma else width * height
        return cls(width, height, np.zeros(size, dtype=np.int16), 0)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    @property
    def has_chroma(self) -> bool:
        return self.pixels.size >= self.width * self.height * 3 // 2

    @property
    def luma(self) -> WideBuffer:
        """(height, width) view of the luma plane."""
        return self.pixels[: self.width * self.height].reshape(self.height, self.width)

    @property
    def chroma_u(self) -> WideBuffer:
        """(height/2, width/2) view of the U plane."""
        return self._chroma_plane(0)

    @property
    def chroma_v(self) -> WideBuffer:
        """(height/2, width/2) view of the V plane."""
        return self._chroma_plane(1)

    @property
    def max_value(self) -> int:
        return self.dynamic_range - 1

    def _chroma_plane(self, index: int) -> WideBuffer:
        if not self.has_chroma:
            raise ValueError("Image carries no chroma planes")
        quarter = self.width * self.height // 4
        start = self.width * self.height + index * quarter
        return self.pixels[start : start + quarter].reshape(self.height // 2, self.width // 2)

    def clear(self) -> None:
        self.pixels.fill(0)
        self.dynamic_range = 0

    def copy(self) -> "WideImage":
        return WideImage(self.width, self.height, self.pixels.copy(), self.dynamic_range)

    def scale(self, factor: float) -> None:
        """
        Linear in-place scaling of every sample and of the dynamic range.
        Samples truncate toward zero.
        """
        scaled = self.pixels.astype(np.float64) * factor
        info = np.iinfo(np.int16)
        self.pixels[:] = np.clip(np.trunc(scaled), info.min, info.max).astype(np.int16)
        self.dynamic_range = int(round(self.dynamic_range * factor))
