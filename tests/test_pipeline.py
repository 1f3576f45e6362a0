import dataclasses
import numpy as np
import pytest
from hdrstack.domain.models import HdrConfig
from hdrstack.domain.types import FrameGeometry, FrameMetadata
from hdrstack.features.accumulate.logic import accumulate
from hdrstack.kernel.image.yuv import frame_planes
from hdrstack.features.accumulate.models import AccumulateConfig
from hdrstack.features.diffusion.logic import lp_filter
from hdrstack.features.metering.models import MeteringConfig
from hdrstack.features.tonemap.models import DegenerateTonemapError
from hdrstack.kernel.image.validation import FrameGeometryError
from hdrstack.kernel.image.wide import WideImage
from hdrstack.pipeline.driver import HdrPipeline, PipelineState, PipelineStateError
from hdrstack.pipeline.interfaces import MergeContext
from hdrstack.pipeline.merge import run_merge
from frame_factory import make_frame, ramp

STILL = FrameGeometry(32, 24, 32)
TINY = FrameGeometry(4, 4, 4)


class FakeCamera:
    def __init__(self, geometry=STILL):
        self.geometry = geometry
        self.settings = []
        self.stops = 0

    def reconfigure(self, settings):
        self.settings.append(settings)
        return self.geometry

    def stop(self):
        self.stops += 1


class FakeEncoder:
    def __init__(self):
        self.saved = {}

    def save(self, buffer, geometry, metadata, name):
        self.saved[name] = (buffer.copy(), geometry, metadata)


class FakePreview:
    def __init__(self):
        self.shown = 0

    def show(self, frame):
        self.shown += 1


def _config(preview_frames=2, num_frames=3, **tone_curve):
    config = HdrConfig()
    return dataclasses.replace(
        config,
        accumulate=AccumulateConfig(num_frames=num_frames),
        metering=dataclasses.replace(MeteringConfig(), preview_frames=preview_frames),
        tone_curve=dataclasses.replace(config.tone_curve, **tone_curve),
    )


def test_state_sequence():
    camera, encoder, preview = FakeCamera(), FakeEncoder(), FakePreview()
    pipeline = HdrPipeline(_config(), camera, encoder, preview)
    viewfinder = make_frame(ramp(12, 16), metadata=FrameMetadata(exposure_time=8000))
    still = make_frame(ramp(24, 32))

    assert pipeline.state == PipelineState.PREVIEWING
    assert pipeline.handle_frame(viewfinder) == PipelineState.PREVIEWING
    assert pipeline.handle_frame(viewfinder) == PipelineState.METERING
    assert pipeline.handle_frame(viewfinder) == PipelineState.ACCUMULATING
    assert pipeline.handle_frame(still) == PipelineState.ACCUMULATING
    assert pipeline.handle_frame(still) == PipelineState.ACCUMULATING
    assert pipeline.handle_frame(still) == PipelineState.DONE

    assert preview.shown == 2 + 2
    assert len(camera.settings) == 1
    assert set(encoder.saved) == {"short", "hdr"}
    buffer, geometry, _ = encoder.saved["hdr"]
    assert geometry == STILL
    assert buffer.shape == (STILL.packed_size,)
    assert pipeline.context.metrics["tonemap_skipped"] is False
    # The accumulator is released once merged
    assert pipeline.accumulator is None


def test_metering_reconfigures_capture():
    camera = FakeCamera()
    pipeline = HdrPipeline(_config(preview_frames=0), camera, FakeEncoder())
    meta = FrameMetadata(exposure_time=10000, analogue_gain=2.0, digital_gain=1.0)

    assert pipeline.state == PipelineState.METERING
    pipeline.handle_frame(make_frame(np.full((8, 8), 200, dtype=np.uint8), metadata=meta))

    assert camera.settings[0].exposure_time == 10000
    assert camera.settings[0].analogue_gain == 2.0


def test_frames_after_done_are_rejected():
    pipeline = HdrPipeline(_config(preview_frames=0, num_frames=1), FakeCamera(), FakeEncoder())
    pipeline.handle_frame(make_frame(ramp(8, 8)))
    pipeline.handle_frame(make_frame(ramp(24, 32)))
    assert pipeline.state == PipelineState.DONE

    with pytest.raises(PipelineStateError):
        pipeline.handle_frame(make_frame(ramp(24, 32)))


def test_mismatched_frame_is_rejected():
    pipeline = HdrPipeline(_config(preview_frames=0), FakeCamera(), FakeEncoder())
    pipeline.handle_frame(make_frame(ramp(8, 8)))

    with pytest.raises(FrameGeometryError):
        pipeline.handle_frame(make_frame(ramp(24, 30)))


def test_flat_grey_scene_end_to_end():
    grey = make_frame(np.full((24, 32), 128, dtype=np.uint8))

    # Accumulation and filtering on their own
    acc = WideImage.allocate(32, 24)
    for _ in range(8):
        accumulate(acc, grey.data, 32)
    assert acc.dynamic_range == 2048
    lp = lp_filter(acc, HdrConfig().lp_filter)
    assert np.array_equal(lp.luma[1:-1, 1:-1], acc.luma[1:-1, 1:-1])

    # Full capture through the driver; the zero border keeps the curve anchors apart
    encoder = FakeEncoder()
    pipeline = HdrPipeline(_config(preview_frames=1, num_frames=8), FakeCamera(), encoder)
    pipeline.handle_frame(grey)
    pipeline.handle_frame(grey)
    for _ in range(8):
        pipeline.handle_frame(grey)

    assert pipeline.state == PipelineState.DONE
    assert pipeline.context.metrics["tonemap_skipped"] is False
    buffer, geometry, _ = encoder.saved["hdr"]
    y, u, v = frame_planes(buffer, geometry)
    assert np.unique(y[1:-1, 1:-1]).size == 1
    assert np.all(u == 128) and np.all(v == 128)


def test_degenerate_curve_falls_back_to_linear():
    grey = make_frame(np.full((4, 4), 128, dtype=np.uint8))
    encoder = FakeEncoder()
    pipeline = HdrPipeline(_config(preview_frames=1, num_frames=8), FakeCamera(TINY), encoder)
    pipeline.handle_frame(grey)
    pipeline.handle_frame(grey)
    for _ in range(8):
        pipeline.handle_frame(grey)

    assert pipeline.state == PipelineState.DONE
    assert pipeline.context.metrics["tonemap_skipped"] is True
    assert pipeline.context.metrics["tonemap_quantiles"][1] == 0.0
    buffer, geometry, _ = encoder.saved["hdr"]
    y, u, v = frame_planes(buffer, geometry)
    assert np.all(y == 128)
    assert np.all(u == 128) and np.all(v == 128)


def test_degenerate_curve_aborts_when_fallback_disabled():
    grey = make_frame(np.full((4, 4), 90, dtype=np.uint8))
    encoder = FakeEncoder()
    pipeline = HdrPipeline(
        _config(preview_frames=0, num_frames=2, fallback_to_linear=False), FakeCamera(TINY), encoder
    )
    pipeline.handle_frame(grey)
    pipeline.handle_frame(grey)

    with pytest.raises(DegenerateTonemapError):
        pipeline.handle_frame(grey)

    assert pipeline.state == PipelineState.DONE
    assert "hdr" not in encoder.saved


def test_run_merge_normalises_to_reference_burst():
    frame = make_frame(ramp(24, 32), u=150, v=110)
    acc = WideImage.allocate(32, 24)
    for _ in range(4):
        accumulate(acc, frame.data, 32)

    context = MergeContext(geometry=STILL)
    out = run_merge(acc, _config(num_frames=4), STILL, context)

    assert context.metrics["dynamic_range"] == 4096
    assert context.tonemap is not None
    assert out.dtype == np.uint8
    assert out.shape == (STILL.packed_size,)


def test_dark_background_is_tonemapped_by_default():
    luma = np.zeros((48, 64), dtype=np.uint8)
    luma[:, 26:] = ramp(48, 38)
    frame = make_frame(luma)
    acc = WideImage.allocate(64, 48)
    for _ in range(8):
        accumulate(acc, frame.data, 64)

    geometry = FrameGeometry(64, 48, 64)
    context = MergeContext(geometry=geometry)
    run_merge(acc, HdrConfig(), geometry, context)

    assert context.metrics["tonemap_skipped"] is False
    assert len(context.tonemap.points) == 5
