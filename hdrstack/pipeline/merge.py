from typing import List
from hdrstack.domain.models import HdrConfig
from hdrstack.domain.types import FrameGeometry, PackedBuffer
from hdrstack.features.diffusion.processor import LowPassProcessor
from hdrstack.features.extract.logic import extract
from hdrstack.features.tonemap.processor import TonemapProcessor
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.logging import get_logger
from hdrstack.pipeline.interfaces import IProcessor, MergeContext

logger = get_logger("merge")


def build_merge_steps(config: HdrConfig) -> List[IProcessor]:
    return [
        LowPassProcessor(config.lp_filter),
        TonemapProcessor(config.tone_curve, config.tonemap),
    ]


def run_merge(
    accumulator: WideImage, config: HdrConfig, geometry: FrameGeometry, context: MergeContext | None = None
) -> PackedBuffer:
    """
    Turns a finished accumulator into the output buffer: normalise to the
    tuning's reference burst size, low-pass filter, tonemap, extract.

    The accumulator is consumed (modified in place).
    """
    if context is None:
        context = MergeContext(geometry=geometry)

    factor = config.accumulate.scale_factor
    if factor != 1.0:
        accumulator.scale(factor)
    context.metrics["dynamic_range"] = accumulator.dynamic_range

    logger.info(f"HDR processing starting ({accumulator.width}x{accumulator.height}, range {accumulator.dynamic_range})")
    image = accumulator
    for step in build_merge_steps(config):
        image = step.process(image, context)

    return extract(image, geometry.stride)
