from typing import Tuple
import numpy as np
from hdrstack.domain.types import FrameGeometry, PackedBuffer


def frame_planes(
    data: PackedBuffer, geometry: FrameGeometry
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Strided (Y, U, V) views of a planar YUV420 buffer, cropped to the image width.
    Writing through the views writes into data.
    """
    w, h, stride = geometry.width, geometry.height, geometry.stride
    w2, h2, stride2 = w // 2, h // 2, stride // 2

    y_plane = data[: stride * h].reshape(h, stride)[:, :w]
    u_start = stride * h
    v_start = u_start + stride2 * h2
    u_plane = data[u_start:v_start].reshape(h2, stride2)[:, :w2]
    v_plane = data[v_start : v_start + stride2 * h2].reshape(h2, stride2)[:, :w2]
    return y_plane, u_plane, v_plane
