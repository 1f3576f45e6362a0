from concurrent.futures import ThreadPoolExecutor
import numpy as np
from hdrstack.domain.types import CHROMA_NEUTRAL, FRAME_RANGE, FrameGeometry, PackedBuffer, WideBuffer
from hdrstack.kernel.image.yuv import frame_planes
from hdrstack.kernel.image.validation import ensure_packed
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.performance import time_function


def _add_luma_rows(dest: WideBuffer, src: np.ndarray) -> None:
    np.add(dest, src, out=dest, casting="unsafe")


def _add_chroma(dest: WideBuffer, src: np.ndarray) -> None:
    np.add(dest, src.astype(np.int16) - CHROMA_NEUTRAL, out=dest, casting="unsafe")


@time_function
def accumulate(image: WideImage, frame: PackedBuffer, stride: int) -> None:
    """
    Adds an 8-bit planar YUV420 frame into the running wide-range image.

    Luma is split into two halves summed on worker threads while the chroma
    planes are summed on the calling thread. Every plane is complete when this
    returns. The frame must share the image's width and height.
    """
    data = ensure_packed(frame)
    geometry = FrameGeometry(image.width, image.height, stride)
    y_src, u_src, v_src = frame_planes(data, geometry)

    luma = image.luma
    half = image.height // 2

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="accumulate") as pool:
        top = pool.submit(_add_luma_rows, luma[:half], y_src[:half])
        bottom = pool.submit(_add_luma_rows, luma[half:], y_src[half:])

        _add_chroma(image.chroma_u, u_src)
        _add_chroma(image.chroma_v, v_src)
        image.dynamic_range += FRAME_RANGE

        # Re-raise any worker failure before returning
        top.result()
        bottom.result()
