from concurrent.futures import ThreadPoolExecutor
from typing import Tuple
import numpy as np
from numba import njit  # type: ignore
from hdrstack.features.diffusion.models import BORDER_SIZE, WEIGHT_TABLE_SIZE, LpFilterConfig
from hdrstack.kernel.image.wide import WideImage
from hdrstack.kernel.system.performance import time_function

# Causal neighbours (dy, dx): three already visited plus the diagonal not yet visited
FORWARD_NEIGHBOURS = np.array([[-1, -1], [-1, 0], [-1, 1], [0, -1]], dtype=np.int64)
REVERSE_NEIGHBOURS = np.array([[1, 1], [1, 0], [1, -1], [0, 1]], dtype=np.int64)


def diffusion_weights() -> np.ndarray:
    d = np.arange(WEIGHT_TABLE_SIZE, dtype=np.float64)
    return np.exp(-(d * d) / 100.0)


@njit(cache=True, nogil=True)
def _diffusion_pass_jit(
    luma: np.ndarray,
    threshold_lut: np.ndarray,
    weights: np.ndarray,
    neighbours: np.ndarray,
    strength: float,
    size: int,
    reverse: bool,
    out_pixels: np.ndarray,
    out_weight_sums: np.ndarray,
) -> None:
    """
    Single-direction IIR diffusion over a luma plane.

    Each pixel blends its own value (weighted by strength) with the filtered
    values of its causal neighbours, weighted by how close they are relative
    to the threshold for the pixel's value. The pass skips the size rows and
    columns it starts from but runs up to the opposite edges; neighbours
    outside the plane read as zero.
    """
    h, w = luma.shape
    n_weights = weights.shape[0]
    rows = h - size
    cols = w - size

    for j in range(rows):
        y = h - 1 - size - j if reverse else size + j
        for i in range(cols):
            x = w - 1 - size - i if reverse else size + i
            pixel = luma[y, x]
            thresh = threshold_lut[pixel]
            pixel_wt_sum = pixel * strength
            wt_sum = strength
            for k in range(neighbours.shape[0]):
                ny = y + neighbours[k, 0]
                nx = x + neighbours[k, 1]
                if 0 <= ny < h and 0 <= nx < w:
                    p = out_pixels[ny, nx]
                else:
                    p = 0.0
                idx = int(abs(p - pixel) * 10.0 / thresh)
                wt = 0.0 if idx >= n_weights else weights[idx]
                pixel_wt_sum += wt * p
                wt_sum += wt
            out_pixels[y, x] = pixel_wt_sum / wt_sum
            out_weight_sums[y, x] = wt_sum


def diffusion_pass(
    luma: np.ndarray,
    threshold_lut: np.ndarray,
    weights: np.ndarray,
    strength: float,
    reverse: bool,
    size: int = BORDER_SIZE,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Runs one directional pass, returning the filtered values and the per-pixel
    sum of weights. Values within size of the edges the pass starts from stay
    zero.
    """
    pixels = np.zeros(luma.shape, dtype=np.float64)
    weight_sums = np.zeros(luma.shape, dtype=np.float64)
    neighbours = REVERSE_NEIGHBOURS if reverse else FORWARD_NEIGHBOURS
    _diffusion_pass_jit(
        np.ascontiguousarray(luma, dtype=np.int64),
        threshold_lut,
        weights,
        neighbours,
        float(strength),
        size,
        reverse,
        pixels,
        weight_sums,
    )
    return pixels, weight_sums


def combine_passes(
    fwd: Tuple[np.ndarray, np.ndarray],
    rev: Tuple[np.ndarray, np.ndarray],
    size: int = BORDER_SIZE,
) -> np.ndarray:
    """
    Weight-sum-weighted average of the two passes over the interior. The
    border within size of every edge is left at zero.
    """
    fwd_pixels, fwd_wt = fwd
    rev_pixels, rev_wt = rev
    h, w = fwd_pixels.shape
    out = np.zeros((h, w), dtype=np.int16)

    inner = (slice(size, h - size), slice(size, w - size))
    num = fwd_pixels[inner] * fwd_wt[inner] + rev_pixels[inner] * rev_wt[inner]
    den = fwd_wt[inner] + rev_wt[inner]
    # Nearest rather than truncated so flat regions reproduce their input exactly
    out[inner] = np.rint(num / den).astype(np.int16)
    return out


@time_function
def lp_filter(image: WideImage, config: LpFilterConfig) -> WideImage:
    """
    Edge-preserving low-pass copy of the luma plane. Chroma is not filtered,
    so the result is a luma-only image sharing the source's dynamic range.

    The forward pass runs on a worker thread while the reverse pass runs on the
    caller's; the combine waits for both.
    """
    if image.dynamic_range <= 0:
        raise ValueError("Cannot filter an image with no dynamic range")

    threshold_lut = config.threshold.generate_lut(image.dynamic_range)
    if np.any(threshold_lut <= 0):
        raise ValueError("Filter threshold must be positive over the whole dynamic range")

    weights = diffusion_weights()
    luma = np.ascontiguousarray(image.luma, dtype=np.int64)

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="lp-forward") as pool:
        fwd_future = pool.submit(
            diffusion_pass, luma, threshold_lut, weights, config.strength, False
        )
        rev = diffusion_pass(luma, threshold_lut, weights, config.strength, True)
        fwd = fwd_future.result()

    out = WideImage.allocate(image.width, image.height, with_chroma=False)
    out.dynamic_range = image.dynamic_range
    out.luma[:] = combine_passes(fwd, rev)
    return out
