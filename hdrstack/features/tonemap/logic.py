import numpy as np
from numba import njit  # type: ignore
from hdrstack.features.tonemap.models import DegenerateTonemapError, ToneCurveConfig, TonemapConfig
from hdrstack.kernel.curve.pwl import Pwl, PwlError
from hdrstack.kernel.image.histogram import Histogram, histogram_of
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.logging import get_logger
from hdrstack.kernel.system.performance import time_function

logger = get_logger("tonemap")


def calculate_histogram(image: WideImage) -> Histogram:
    """
    Frequency of every luma value over [0, dynamic_range).
    """
    return histogram_of(image.luma, image.dynamic_range)


def create_tonemap(lowpass: WideImage, config: ToneCurveConfig) -> Pwl:
    """
    Builds a 5-point tonemap curve from the low-pass histogram.

    The fixed_q quantile stays where it is to keep some contrast at the
    bottom of the range, the median moves according to q50_curve, the lower
    quartile follows the median's target by q25_factor, and the maximum maps
    to itself.
    """
    maxval = lowpass.max_value
    histogram = calculate_histogram(lowpass)

    q_fixed = histogram.quantile(config.fixed_q)
    target_fixed = q_fixed
    q50 = histogram.quantile(0.5)
    target50 = config.q50_curve.eval(q50)
    q25 = histogram.quantile(0.25)
    target25 = target50 * config.q25_factor

    anchors = (0.0, q_fixed, q25, q50, float(maxval))
    logger.debug(f"Tonemap anchors q_fixed={q_fixed:.2f} q25={q25:.2f} q50={q50:.2f} max={maxval}")

    gaps = np.diff(anchors[1:])
    if anchors[1] <= anchors[0] or np.any(gaps <= config.min_quantile_gap):
        raise DegenerateTonemapError(
            f"Histogram quantiles not strictly increasing for a tonemap curve "
            f"(q_fixed={q_fixed:.2f}, q25={q25:.2f}, q50={q50:.2f}, max={maxval})",
            quantiles=anchors,
        )

    tonemap = Pwl()
    try:
        tonemap.append(0, 0)
        tonemap.append(q_fixed, target_fixed)
        tonemap.append(q25, target25)
        tonemap.append(q50, target50)
        tonemap.append(maxval, maxval)
    except PwlError as e:
        raise DegenerateTonemapError(str(e), quantiles=anchors) from e

    return tonemap


@njit(cache=True, nogil=True)
def _apply_tonemap_jit(
    luma: np.ndarray,
    lp_luma: np.ndarray,
    chroma_u: np.ndarray,
    chroma_v: np.ndarray,
    tonemap_lut: np.ndarray,
    pos_strength_lut: np.ndarray,
    neg_strength_lut: np.ndarray,
    maxval: int,
    with_chroma: bool,
) -> None:
    """
    Maps the low-pass signal, re-adds the high-pass detail with a gain and
    rescales chroma by the luma ratio on every 2x2 block.
    """
    h, w = luma.shape
    last = tonemap_lut.shape[0] - 1
    for y in range(h):
        for x in range(w):
            y_lp_orig = lp_luma[y, x]
            if y_lp_orig > last:
                y_lp_orig = last
            elif y_lp_orig < 0:
                y_lp_orig = 0
            y_hp = luma[y, x] - y_lp_orig
            y_lp_mapped = tonemap_lut[y_lp_orig]
            if y_hp > 0:
                strength = pos_strength_lut[y_lp_orig]
            else:
                strength = neg_strength_lut[y_lp_orig]
            y_final = y_lp_mapped + int(strength * y_hp)
            if y_final < 0:
                y_final = 0
            elif y_final > maxval:
                y_final = maxval
            luma[y, x] = y_final

            if with_chroma and (x & 1) == 0 and (y & 1) == 0:
                f = (y_final + 1) / (y_lp_orig + 1)
                cy = y >> 1
                cx = x >> 1
                u = int(chroma_u[cy, cx] * f)
                v = int(chroma_v[cy, cx] * f)
                chroma_u[cy, cx] = min(max(u, -32768), 32767)
                chroma_v[cy, cx] = min(max(v, -32768), 32767)


@time_function
def apply_tonemap(image: WideImage, lowpass: WideImage, config: TonemapConfig) -> None:
    """
    Tonemaps the original image in place against its low-pass version.

    Requires config.tonemap to be set (see create_tonemap).
    """
    if config.tonemap is None:
        raise ValueError("TonemapConfig.tonemap must be set before applying it")

    size = image.dynamic_range
    tonemap_lut = config.tonemap.generate_lut(size).astype(np.int64)
    pos_strength_lut = config.pos_strength.generate_lut(size)
    neg_strength_lut = config.neg_strength.generate_lut(size)

    if image.has_chroma:
        chroma_u, chroma_v = image.chroma_u, image.chroma_v
    else:
        chroma_u = chroma_v = np.zeros((0, 0), dtype=np.int16)

    _apply_tonemap_jit(
        image.luma,
        lowpass.luma,
        chroma_u,
        chroma_v,
        tonemap_lut,
        pos_strength_lut,
        neg_strength_lut,
        image.max_value,
        image.has_chroma,
    )
