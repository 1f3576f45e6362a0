import numpy as np
import numpy.typing as npt


class Histogram:
    """
    Frequency table over [0, len(bins)) answering quantile queries.
    """

    def __init__(self, bins: npt.ArrayLike):
        counts = np.asarray(bins, dtype=np.uint64)
        if counts.ndim != 1 or counts.size == 0:
            raise ValueError("Histogram needs a non-empty 1-D array of bin counts")
        self.bins = counts
        # cumulative[i] is the count of all bins below i
        self.cumulative = np.concatenate(([0], np.cumsum(counts, dtype=np.uint64))).astype(np.uint64)

    def __len__(self) -> int:
        return int(self.bins.size)

    def total(self) -> int:
        return int(self.cumulative[-1])

    def quantile(self, q: float, first: int | None = None, last: int | None = None) -> float:
        """
        Returns the value below which a fraction q of the histogram mass falls,
        interpolating linearly inside the bin that crosses the target count.
        """
        if not 0.0 <= q <= 1.0:
            raise ValueError(f"Quantile must be within [0, 1], got {q}")
        if first is None:
            first = 0
        if last is None:
            last = self.bins.size - 1

        items = int(q * self.total())
        # First bin in [first, last] whose upper cumulative count exceeds items
        upper = self.cumulative[first + 1 : last + 2]
        idx = first + int(np.searchsorted(upper, items, side="right"))
        idx = min(idx, last)

        lo = int(self.cumulative[idx])
        hi = int(self.cumulative[idx + 1])
        frac = 0.0 if hi == lo else (items - lo) / (hi - lo)
        return idx + frac


def histogram_of(samples: npt.ArrayLike, num_bins: int) -> Histogram:
    """
    Builds a histogram of non-negative integer samples over [0, num_bins).
    """
    values = np.asarray(samples).reshape(-1)
    counts = np.bincount(values.astype(np.int64), minlength=num_bins)[:num_bins]
    return Histogram(counts)
