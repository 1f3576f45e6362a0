from enum import Enum
from typing import Optional
from hdrstack.domain.models import HdrConfig
from hdrstack.domain.types import FrameGeometry, RawFrame
from hdrstack.features.accumulate.logic import accumulate
from hdrstack.features.metering.logic import capture_settings, exposure_adjustment
from hdrstack.kernel.image.validation import ensure_packed, validate_frame, validate_geometry
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.logging import get_logger
from hdrstack.pipeline.interfaces import ICaptureControl, IImageEncoder, IPreviewSink, MergeContext
from hdrstack.pipeline.merge import run_merge

logger = get_logger("pipeline")


class PipelineState(str, Enum):
    PREVIEWING = "previewing"
    METERING = "metering"
    ACCUMULATING = "accumulating"
    MERGING = "merging"
    DONE = "done"


class PipelineStateError(RuntimeError):
    """Raised when a frame arrives after the pipeline has finished."""


class HdrPipeline:
    """
    Sequences one HDR capture: preview warm-up, one metering frame, a burst of
    accumulated frames, then the merge. Frames are handled one at a time; the
    pipeline produces exactly one image and is then discarded.
    """

    def __init__(
        self,
        config: HdrConfig,
        camera: ICaptureControl,
        encoder: IImageEncoder,
        preview: Optional[IPreviewSink] = None,
    ):
        self.config = config
        self.camera = camera
        self.encoder = encoder
        self.preview = preview

        self.state = PipelineState.PREVIEWING if config.metering.preview_frames > 0 else PipelineState.METERING
        self.frame_count = 0
        self.accumulated = 0
        self.geometry: Optional[FrameGeometry] = None
        self.accumulator: Optional[WideImage] = None
        self.context: Optional[MergeContext] = None

    def handle_frame(self, frame: RawFrame) -> PipelineState:
        """
        Processes one frame according to the current state and returns the new state.
        """
        if self.state == PipelineState.DONE:
            raise PipelineStateError("Pipeline has already produced its image")

        if self.state == PipelineState.PREVIEWING:
            self._preview(frame)
        elif self.state == PipelineState.METERING:
            self._meter(frame)
        elif self.state == PipelineState.ACCUMULATING:
            self._accumulate(frame)

        self.frame_count += 1
        return self.state

    def _preview(self, frame: RawFrame) -> None:
        if self.preview is not None:
            self.preview.show(frame)
        if self.frame_count + 1 >= self.config.metering.preview_frames:
            self.state = PipelineState.METERING

    def _meter(self, frame: RawFrame) -> None:
        self.camera.stop()

        if self.config.metering.save_short:
            logger.info("Save short exposure")
            self.encoder.save(ensure_packed(frame.data), frame.geometry, frame.metadata, "short")

        adjustment = exposure_adjustment(frame, self.config.metering)
        settings = capture_settings(frame.metadata, adjustment)

        geometry = self.camera.reconfigure(settings)
        validate_geometry(geometry)
        self.geometry = geometry
        self.accumulator = WideImage.allocate(geometry.width, geometry.height)
        self.state = PipelineState.ACCUMULATING
        logger.info(f"Capturing {self.config.accumulate.num_frames} frames at {geometry.width}x{geometry.height}")

    def _accumulate(self, frame: RawFrame) -> None:
        assert self.accumulator is not None and self.geometry is not None
        data = ensure_packed(frame.data)
        validate_frame(data, self.geometry, frame.geometry)

        self.accumulated += 1
        logger.info(f"Accumulate image {self.accumulated}")
        accumulate(self.accumulator, data, self.geometry.stride)

        if self.accumulated < self.config.accumulate.num_frames:
            if self.preview is not None:
                self.preview.show(frame)
            return

        self.camera.stop()
        self.state = PipelineState.MERGING
        self._merge(frame)

    def _merge(self, last_frame: RawFrame) -> None:
        assert self.accumulator is not None and self.geometry is not None
        accumulator, self.accumulator = self.accumulator, None
        self.context = MergeContext(geometry=self.geometry)
        try:
            output = run_merge(accumulator, self.config, self.geometry, self.context)
        finally:
            self.state = PipelineState.DONE

        logger.info("Save HDR image")
        self.encoder.save(output, self.geometry, last_frame.metadata, "hdr")
