import io
import os
import cv2
import numpy as np
from PIL import Image
from hdrstack.domain.types import FrameGeometry, FrameMetadata, PackedBuffer
from hdrstack.kernel.image.yuv import frame_planes
from hdrstack.kernel.system.logging import get_logger

logger = get_logger("encoders")


def yuv420_to_rgb(buffer: PackedBuffer, geometry: FrameGeometry) -> np.ndarray:
    """
    Converts a strided planar YUV420 buffer to an 8-bit RGB array.
    """
    y_plane, u_plane, v_plane = frame_planes(buffer, geometry)
    # OpenCV expects tightly packed I420
    i420 = np.concatenate([y_plane.reshape(-1), u_plane.reshape(-1), v_plane.reshape(-1)])
    i420 = i420.reshape(geometry.height * 3 // 2, geometry.width)
    return cv2.cvtColor(i420, cv2.COLOR_YUV2RGB_I420)


def encode_jpeg(buffer: PackedBuffer, geometry: FrameGeometry, quality: int = 93) -> bytes:
    rgb = yuv420_to_rgb(buffer, geometry)
    pil_img = Image.fromarray(rgb)
    output_buf = io.BytesIO()
    pil_img.save(output_buf, format="JPEG", quality=quality)
    return output_buf.getvalue()


class JpegFileEncoder:
    """
    Writes each handed-over buffer to <output_dir>/<name>.jpg.
    """

    def __init__(self, output_dir: str, quality: int = 93):
        self.output_dir = output_dir
        self.quality = quality

    def path_for(self, name: str) -> str:
        return os.path.join(self.output_dir, f"{name}.jpg")

    def save(self, buffer: PackedBuffer, geometry: FrameGeometry, metadata: FrameMetadata, name: str) -> None:
        os.makedirs(self.output_dir, exist_ok=True)
        out_path = self.path_for(name)
        with open(out_path, "wb") as f:
            f.write(encode_jpeg(buffer, geometry, self.quality))
        logger.info(f"Saved {out_path}")
