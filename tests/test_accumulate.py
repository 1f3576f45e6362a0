import numpy as np
from hdrstack.features.accumulate.logic import accumulate
from hdrstack.kernel.image.wide import WideImage
from frame_factory import make_frame, ramp


def test_single_frame_accumulation():
    luma = ramp(8, 12)
    u = np.arange(24, dtype=np.uint8).reshape(4, 6) + 100
    frame = make_frame(luma, u=u, v=200)

    acc = WideImage.allocate(12, 8)
    accumulate(acc, frame.data, frame.geometry.stride)

    assert acc.dynamic_range == 256
    assert np.array_equal(acc.luma, luma.astype(np.int16))
    # Chroma is stored de-biased
    assert np.array_equal(acc.chroma_u, u.astype(np.int16) - 128)
    assert np.all(acc.chroma_v == 72)


def test_dynamic_range_grows_per_frame():
    frame = make_frame(np.full((4, 4), 255, dtype=np.uint8), u=255, v=0)
    acc = WideImage.allocate(4, 4)
    for _ in range(5):
        accumulate(acc, frame.data, 4)

    assert acc.dynamic_range == 5 * 256
    assert np.all(acc.luma == 5 * 255)
    assert np.all(acc.chroma_u == 5 * 127)
    assert np.all(acc.chroma_v == 5 * -128)


def test_accumulation_order_does_not_matter():
    rng = np.random.default_rng(3)
    a = make_frame(rng.integers(0, 256, (6, 10), dtype=np.uint8), u=rng.integers(0, 256, (3, 5), dtype=np.uint8))
    b = make_frame(rng.integers(0, 256, (6, 10), dtype=np.uint8), v=rng.integers(0, 256, (3, 5), dtype=np.uint8))

    ab = WideImage.allocate(10, 6)
    accumulate(ab, a.data, 10)
    accumulate(ab, b.data, 10)

    ba = WideImage.allocate(10, 6)
    accumulate(ba, b.data, 10)
    accumulate(ba, a.data, 10)

    assert np.array_equal(ab.pixels, ba.pixels)
    assert ab.dynamic_range == ba.dynamic_range == 512


def test_stride_padding_is_ignored():
    luma = ramp(6, 10)
    frame = make_frame(luma, u=140, v=120, stride=16)

    acc = WideImage.allocate(10, 6)
    accumulate(acc, frame.data, 16)

    assert np.array_equal(acc.luma, luma.astype(np.int16))
    assert np.all(acc.chroma_u == 12)
    assert np.all(acc.chroma_v == -8)


def test_accepts_bytes_buffers():
    frame = make_frame(np.full((4, 4), 9, dtype=np.uint8))
    acc = WideImage.allocate(4, 4)
    accumulate(acc, frame.data.tobytes(), 4)
    assert np.all(acc.luma == 9)
