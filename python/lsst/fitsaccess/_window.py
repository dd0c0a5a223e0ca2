# This file is part of lsst-fitsaccess.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (https://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

from __future__ import annotations

__all__ = ("PixelWindow",)

import itertools
import math
from collections.abc import Iterator, Sequence
from typing import final


@final
class PixelWindow:
    """A rectangular window of pixels in FITS conventions.

    Parameters
    ----------
    first_pixel
        One-based coordinates of the first pixel, fastest-varying axis first
        (i.e. ``NAXIS1`` first).
    counts
        Number of pixels along each axis, in the same order.

    Notes
    -----
    FITS stores pixels with the first axis varying fastest, so a window maps
    onto a single run of the linear pixel stream only when every axis before
    some axis ``k`` is read in full and every axis after ``k`` has a count of
    one.  `is_contiguous_within` tests that condition and `runs` splits any
    other window into the fewest such runs.
    """

    def __init__(self, first_pixel: Sequence[int], counts: Sequence[int]):
        if len(first_pixel) != len(counts):
            raise ValueError(
                f"Window has {len(first_pixel)} starting coordinates but {len(counts)} counts."
            )
        self._first_pixel = tuple(int(f) for f in first_pixel)
        self._counts = tuple(int(c) for c in counts)
        if any(f < 1 for f in self._first_pixel):
            raise ValueError(f"Pixel coordinates are one-based; got first_pixel={self._first_pixel}.")
        if any(c < 1 for c in self._counts):
            raise ValueError(f"Element counts must be positive; got counts={self._counts}.")

    __slots__ = ("_counts", "_first_pixel")

    @classmethod
    def full(cls, naxes: Sequence[int]) -> PixelWindow:
        """Return the window that covers an entire image."""
        return cls((1,) * len(naxes), naxes)

    @property
    def first_pixel(self) -> tuple[int, ...]:
        """One-based coordinates of the first pixel."""
        return self._first_pixel

    @property
    def counts(self) -> tuple[int, ...]:
        """Number of pixels along each axis."""
        return self._counts

    @property
    def last_pixel(self) -> tuple[int, ...]:
        """One-based coordinates of the last pixel (inclusive)."""
        return tuple(f + c - 1 for f, c in zip(self._first_pixel, self._counts))

    @property
    def naxis(self) -> int:
        """Number of axes."""
        return len(self._counts)

    @property
    def size(self) -> int:
        """Total number of pixels in the window."""
        return math.prod(self._counts)

    def padded(self, naxis: int) -> PixelWindow:
        """Return a window with trailing axes added at coordinate 1 with a
        count of 1.
        """
        extra = naxis - self.naxis
        if extra < 0:
            raise ValueError(f"Cannot pad a {self.naxis}-axis window to {naxis} axes.")
        return PixelWindow(self._first_pixel + (1,) * extra, self._counts + (1,) * extra)

    def is_within(self, naxes: Sequence[int]) -> bool:
        """Test whether the window lies entirely within an image.

        Raises
        ------
        ValueError
            Raised if ``naxes`` does not have one entry per window axis.
        """
        return all(last <= n for last, n in zip(self.last_pixel, naxes, strict=True))

    def linear_offset(self, naxes: Sequence[int]) -> int:
        """Return the zero-based position of the first pixel in the image's
        linear pixel stream.
        """
        offset = 0
        stride = 1
        for f, n in zip(self._first_pixel, naxes, strict=True):
            offset += (f - 1) * stride
            stride *= n
        return offset

    def is_contiguous_within(self, naxes: Sequence[int]) -> bool:
        """Test whether the window is a single run of the linear pixel stream
        of an image.
        """
        k = self._first_partial_axis(naxes)
        return all(c == 1 for c in self._counts[k + 1 :])

    def runs(self, naxes: Sequence[int]) -> Iterator[PixelWindow]:
        """Split the window into contiguous windows, in linear pixel order.

        Parameters
        ----------
        naxes
            Lengths of the image's axes.

        Returns
        -------
        runs
            Iterator over windows that each satisfy `is_contiguous_within`.
            A contiguous window yields only itself.
        """
        k = self._first_partial_axis(naxes)
        if all(c == 1 for c in self._counts[k + 1 :]):
            yield self
            return
        head_first = self._first_pixel[: k + 1]
        head_counts = self._counts[: k + 1]
        tail = [
            range(f, f + c) for f, c in zip(self._first_pixel[k + 1 :], self._counts[k + 1 :], strict=True)
        ]
        ones = (1,) * len(tail)
        # The slowest axis is outermost so runs come out in stream order.
        for coords in itertools.product(*reversed(tail)):
            yield PixelWindow(head_first + tuple(reversed(coords)), head_counts + ones)

    def _first_partial_axis(self, naxes: Sequence[int]) -> int:
        """Return the index of the first axis that is not read in full (or
        the last axis, if all are).
        """
        if len(naxes) != self.naxis:
            raise ValueError(f"Image has {len(naxes)} axes but window has {self.naxis}.")
        for i, (f, c, n) in enumerate(zip(self._first_pixel, self._counts, naxes)):
            if f != 1 or c != n:
                return i
        return self.naxis - 1

    def __eq__(self, other: object) -> bool:
        if type(other) is PixelWindow:
            return self._first_pixel == other._first_pixel and self._counts == other._counts
        return False

    def __hash__(self) -> int:
        return hash((self._first_pixel, self._counts))

    def __repr__(self) -> str:
        return f"PixelWindow(first_pixel={self._first_pixel}, counts={self._counts})"
