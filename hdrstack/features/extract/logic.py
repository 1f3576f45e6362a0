import numpy as np
from hdrstack.domain.types import CHROMA_NEUTRAL, FRAME_RANGE, FrameGeometry, PackedBuffer
from hdrstack.kernel.image.yuv import frame_planes
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.performance import time_function


def _reduce(plane: np.ndarray, ratio: float) -> np.ndarray:
    # Truncates toward zero like an integer conversion
    return np.trunc(plane.astype(np.float64) / ratio).astype(np.int32)


@time_function
def extract(image: WideImage, stride: int) -> PackedBuffer:
    """
    Rescales the wide-range image to an 8-bit planar YUV420 buffer with the
    given line stride (stride * height * 3 / 2 bytes).

    Chroma gets the neutral offset back and is clamped to [0, 255]. Luma is
    expected to be in range already and is not clamped.
    """
    if image.dynamic_range <= 0:
        raise ValueError("Cannot extract an image with no dynamic range")

    geometry = FrameGeometry(image.width, image.height, stride)
    dest = np.zeros(geometry.packed_size, dtype=np.uint8)
    dest_y, dest_u, dest_v = frame_planes(dest, geometry)

    ratio = image.dynamic_range / FRAME_RANGE

    dest_y[:] = _reduce(image.luma, ratio).astype(np.uint8)
    if image.has_chroma:
        dest_u[:] = np.clip(_reduce(image.chroma_u, ratio) + CHROMA_NEUTRAL, 0, 255).astype(np.uint8)
        dest_v[:] = np.clip(_reduce(image.chroma_v, ratio) + CHROMA_NEUTRAL, 0, 255).astype(np.uint8)
    else:
        dest_u[:] = CHROMA_NEUTRAL
        dest_v[:] = CHROMA_NEUTRAL

    return dest
