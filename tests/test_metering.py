import numpy as np
import pytest
from hdrstack.domain.types import FrameMetadata
from hdrstack.features.metering.logic import capture_settings, exposure_adjustment
from hdrstack.features.metering.models import MeteringConfig
from frame_factory import make_frame


def test_dark_frame_gets_boosted():
    frame = make_frame(np.zeros((16, 16), dtype=np.uint8))
    assert exposure_adjustment(frame, MeteringConfig()) == pytest.approx(2.0, abs=0.2)


def test_bright_frame_is_left_alone():
    frame = make_frame(np.full((16, 16), 200, dtype=np.uint8))
    # q10 lies far beyond the curve's domain and is clipped to its end
    assert exposure_adjustment(frame, MeteringConfig()) == 1.0


def test_adjustment_interpolates_curve():
    luma = np.full((10, 10), 5, dtype=np.uint8)
    frame = make_frame(luma, stride=12)
    # q10 of a flat image at 5 is 5.1
    expected = MeteringConfig().exposure_adjust.eval(5.1)
    assert exposure_adjustment(frame, MeteringConfig()) == pytest.approx(expected)


def test_capture_settings_fold_gains():
    meta = FrameMetadata(exposure_time=10000, analogue_gain=2.0, digital_gain=1.5, colour_gains=(1.8, 1.4))
    settings = capture_settings(meta, 1.25)
    assert settings.exposure_time == 12500
    assert settings.analogue_gain == pytest.approx(3.0)
    assert settings.colour_gains == (1.8, 1.4)
