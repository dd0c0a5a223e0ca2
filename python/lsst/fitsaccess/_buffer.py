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

__all__ = ("FitsImage", "PixelBuffer")

import dataclasses
from collections.abc import Sequence
from typing import final

import numpy as np

from ._dtypes import NumberType
from ._models import HeaderValue, ImageParameters


@final
class PixelBuffer:
    """Decoded pixel values from a single read.

    Parameters
    ----------
    array
        One-dimensional array of values in FITS pixel order (first axis
        varying fastest).
    datatype
        Type of the values; must match ``array.dtype``.
    any_null
        Whether any decoded value was flagged as undefined.
    counts
        Number of pixels read along each axis, ``NAXIS1`` first.  The
        product must equal ``array.size``.

    Notes
    -----
    A buffer owns its array: the reader that produced it keeps no reference
    and never modifies it afterwards.
    """

    def __init__(self, array: np.ndarray, datatype: NumberType, any_null: bool, counts: Sequence[int]):
        if array.ndim != 1:
            raise ValueError(f"Pixel buffers are one-dimensional; got shape {array.shape}.")
        if array.dtype != np.dtype(datatype.to_numpy()):
            raise TypeError(f"Array has dtype {array.dtype}, not {datatype}.")
        counts = tuple(int(c) for c in counts)
        if int(np.prod(counts, dtype=np.int64)) != array.size:
            raise ValueError(f"Counts {counts} do not match an array with {array.size} elements.")
        self._array = array
        self._datatype = datatype
        self._any_null = bool(any_null)
        self._counts = counts

    @classmethod
    def empty(cls, datatype: NumberType) -> PixelBuffer:
        """Return a buffer with no pixels."""
        return cls(np.zeros(0, dtype=datatype.to_numpy()), datatype, False, (0,))

    @property
    def array(self) -> np.ndarray:
        """The decoded values, in FITS pixel order."""
        return self._array

    @property
    def datatype(self) -> NumberType:
        """Type of the decoded values."""
        return self._datatype

    @property
    def any_null(self) -> bool:
        """Whether any value was flagged as undefined."""
        return self._any_null

    @property
    def counts(self) -> tuple[int, ...]:
        """Number of pixels read along each axis, ``NAXIS1`` first."""
        return self._counts

    @property
    def shape(self) -> tuple[int, ...]:
        """Numpy-ordered shape of the window that was read."""
        return tuple(reversed(self._counts))

    def __len__(self) -> int:
        return self._array.size

    def reshaped(self) -> np.ndarray:
        """Return a view of the values with the numpy-ordered `shape`."""
        return self._array.reshape(self.shape)

    def value_range(self) -> tuple[float, float] | None:
        """Return the minimum and maximum values, ignoring NaNs.

        Returns `None` if there are no (non-NaN) values.
        """
        if self._array.size == 0:
            return None
        if self._datatype.is_integer:
            return (self._array.min().item(), self._array.max().item())
        finite = self._array[~np.isnan(self._array)]
        if finite.size == 0:
            return None
        return (finite.min().item(), finite.max().item())

    def __repr__(self) -> str:
        return (
            f"PixelBuffer(<{self._array.size} x {self._datatype}>, any_null={self._any_null}, "
            f"counts={self._counts})"
        )


@dataclasses.dataclass(frozen=True)
class FitsImage:
    """An image HDU read in full: header, geometry, and pixels."""

    index: int
    """One-based index of the HDU the image was read from."""

    parameters: ImageParameters
    """Geometry and pixel encoding."""

    header: dict[str, HeaderValue]
    """Interpreted header keywords."""

    pixels: PixelBuffer
    """Decoded pixel values."""

    @property
    def width(self) -> int:
        """Length of the first axis (1 if there are no axes)."""
        return self.parameters.naxes[0] if self.parameters.naxis > 0 else 1

    @property
    def height(self) -> int:
        """Length of the second axis (1 if there are fewer than two)."""
        return self.parameters.naxes[1] if self.parameters.naxis > 1 else 1

    @property
    def depth(self) -> int:
        """Length of the third axis (1 if there are fewer than three)."""
        return self.parameters.naxes[2] if self.parameters.naxis > 2 else 1
