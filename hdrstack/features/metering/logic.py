from hdrstack.domain.types import FRAME_RANGE, CaptureSettings, FrameMetadata, RawFrame
from hdrstack.kernel.image.yuv import frame_planes
from hdrstack.features.metering.models import MeteringConfig
from hdrstack.kernel.image.histogram import histogram_of
from hdrstack.kernel.image.validation import ensure_packed
from hdrstack.kernel.system.logging import get_logger

logger = get_logger("metering")


def exposure_adjustment(frame: RawFrame, config: MeteringConfig) -> float:
    """
    Exposure multiplier for the still burst.

    Metering for the highlights stops almost everything from blowing out, but
    when the low quantile of the histogram sits right at the bottom of the
    range the image is better off with a bit more exposure.
    """
    luma, _, _ = frame_planes(ensure_packed(frame.data), frame.geometry)
    histogram = histogram_of(luma, FRAME_RANGE)
    q_low = histogram.quantile(config.metering_quantile)
    curve = config.exposure_adjust
    adjust = curve.eval(curve.domain().clip(q_low))
    logger.info(f"Metering q{config.metering_quantile * 100:g}={q_low:.2f}, exposure adjustment x{adjust:.3f}")
    return adjust


def capture_settings(metadata: FrameMetadata, adjustment: float) -> CaptureSettings:
    """
    Settings for the burst: metered exposure scaled by the adjustment, with the
    digital gain folded into the analogue gain.
    """
    return CaptureSettings(
        exposure_time=int(metadata.exposure_time * adjustment),
        analogue_gain=metadata.analogue_gain * metadata.digital_gain,
        colour_gains=metadata.colour_gains,
    )
