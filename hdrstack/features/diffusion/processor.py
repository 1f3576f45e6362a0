from hdrstack.features.diffusion.models import LpFilterConfig
from hdrstack.features.diffusion.logic import lp_filter
from hdrstack.kernel.image.wide import WideImage
from hdrstack.pipeline.interfaces import IProcessor, MergeContext


class LowPassProcessor(IProcessor):
    """
    Computes the edge-preserving low-pass image; the image itself is untouched.
    """

    def __init__(self, config: LpFilterConfig):
        self.config = config

    def process(self, image: WideImage, context: MergeContext) -> WideImage:
        context.lowpass = lp_filter(image, self.config)
        return image
