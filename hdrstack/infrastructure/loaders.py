import os
import numpy as np
from hdrstack.domain.types import FrameGeometry, FrameMetadata, RawFrame
from hdrstack.kernel.image.validation import FrameGeometryError

SUPPORTED_RAW_EXTENSIONS = {".yuv", ".i420", ".raw"}


def load_yuv420_frame(path: str, geometry: FrameGeometry, metadata: FrameMetadata | None = None) -> RawFrame:
    """
    Reads one planar 8-bit YUV420 frame (Y, then U, then V) from disk.
    """
    size = os.path.getsize(path)
    if size < geometry.packed_size:
        raise FrameGeometryError(
            f"{os.path.basename(path)} holds {size} bytes, {geometry.packed_size} needed for {geometry}"
        )
    data = np.fromfile(path, dtype=np.uint8, count=geometry.packed_size)
    return RawFrame(data=data, geometry=geometry, metadata=metadata or FrameMetadata())
