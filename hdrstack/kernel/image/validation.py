from typing import Any, cast
import numpy as np
from hdrstack.domain.types import FrameGeometry, PackedBuffer


class FrameGeometryError(ValueError):
    """Raised when a frame does not match the geometry of the session."""


def ensure_packed(arr: Any) -> PackedBuffer:
    """
    Ensures the input is a flat uint8 numpy array and returns it as a PackedBuffer.
    Accepts bytes-like objects (e.g. a memory-mapped camera buffer).
    """
    if isinstance(arr, (bytes, bytearray, memoryview)):
        arr = np.frombuffer(arr, dtype=np.uint8)
    if not isinstance(arr, np.ndarray):
        raise TypeError(f"Expected numpy.ndarray or bytes, got {type(arr)}")

    if arr.dtype != np.uint8:
        arr = arr.astype(np.uint8)

    return cast(PackedBuffer, arr.reshape(-1))


def validate_geometry(geometry: FrameGeometry) -> None:
    """Checks a geometry is usable for 4:2:0 processing."""
    if geometry.width <= 0 or geometry.height <= 0:
        raise FrameGeometryError(f"Invalid frame size {geometry.width}x{geometry.height}")
    if geometry.width % 2 or geometry.height % 2:
        raise FrameGeometryError(f"Frame size must be even for 4:2:0, got {geometry.width}x{geometry.height}")
    if geometry.stride < geometry.width or geometry.stride % 2:
        raise FrameGeometryError(f"Stride {geometry.stride} is invalid for width {geometry.width}")


def validate_frame(data: PackedBuffer, expected: FrameGeometry, actual: FrameGeometry) -> None:
    """
    Verifies that a frame matches the session geometry before it is accumulated.
    """
    if actual != expected:
        raise FrameGeometryError(f"Frame geometry {actual} does not match session geometry {expected}")
    if data.size < expected.packed_size:
        raise FrameGeometryError(f"Frame buffer holds {data.size} bytes, expected at least {expected.packed_size}")
