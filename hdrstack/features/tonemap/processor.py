import dataclasses
from hdrstack.features.tonemap.models import DegenerateTonemapError, ToneCurveConfig, TonemapConfig
from hdrstack.features.tonemap.logic import apply_tonemap, create_tonemap
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.logging import get_logger
from hdrstack.pipeline.interfaces import IProcessor, MergeContext

logger = get_logger("tonemap")


class TonemapProcessor(IProcessor):
    """
    Synthesises a tonemap curve from the low-pass histogram and applies it.

    When the histogram is too flat to anchor a curve the step either leaves
    the image linear (fallback_to_linear) or raises DegenerateTonemapError.
    """

    def __init__(self, curve_config: ToneCurveConfig, config: TonemapConfig):
        self.curve_config = curve_config
        self.config = config

    def process(self, image: WideImage, context: MergeContext) -> WideImage:
        if context.lowpass is None:
            raise ValueError("Tonemapping needs the low-pass image from the filter step")

        try:
            curve = create_tonemap(context.lowpass, self.curve_config)
        except DegenerateTonemapError as e:
            context.metrics["tonemap_quantiles"] = e.quantiles
            if not self.curve_config.fallback_to_linear:
                raise
            logger.warning(f"{e}; leaving the image linear")
            context.metrics["tonemap_skipped"] = True
            return image

        context.tonemap = curve
        context.metrics["tonemap_skipped"] = False
        apply_tonemap(image, context.lowpass, dataclasses.replace(self.config, tonemap=curve))
        return image
