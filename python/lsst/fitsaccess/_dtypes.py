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

__all__ = (
    "BitDepth",
    "NumberType",
    "is_unsigned",
)

import enum

import numpy as np
import numpy.typing as npt


class NumberType(enum.StrEnum):
    """Enumeration of pixel value types that decoded buffers may hold."""

    uint8 = enum.auto()
    uint16 = enum.auto()
    uint32 = enum.auto()
    uint64 = enum.auto()
    int8 = enum.auto()
    int16 = enum.auto()
    int32 = enum.auto()
    int64 = enum.auto()
    float32 = enum.auto()
    float64 = enum.auto()

    def to_numpy(self) -> type:
        """Convert an enumeration member to the corresponding numpy scalar
        type object.

        Returns
        -------
        scalar_type
            Numpy scalar type, e.g. `numpy.int16`.  Note that this inherits
            from `type`, not `numpy.dtype` (though a `numpy.dtype` instance
            can always be constructed from it).
        """
        return getattr(np, self.value)

    @classmethod
    def from_numpy(cls, dtype: npt.DTypeLike) -> NumberType:
        """Construct an enumeration member from anything that can be coerced
        to `numpy.dtype`.

        Parameters
        ----------
        dtype
            Object convertible to `numpy.dtype`.

        Returns
        -------
        member
            Enumeration member.

        Raises
        ------
        ValueError
            Raised if the dtype is not a supported pixel type (e.g. `bool` or
            a complex or structured type).
        """
        return cls(np.dtype(dtype).name)

    @property
    def is_integer(self) -> bool:
        """Whether this is an integer type."""
        return np.dtype(self.to_numpy()).kind in "iu"


def is_unsigned(t: NumberType) -> bool:
    """Test whether a `NumberType` corresponds to an unsigned integer type."""
    return np.dtype(t.to_numpy()).kind == "u"


class BitDepth(enum.IntEnum):
    """FITS image pixel encodings, using the CFITSIO image type codes.

    The members with the values allowed for the ``BITPIX`` keyword describe
    what is physically stored.  The others are only produced by
    `from_header` to describe the equivalent type after ``BZERO`` and
    ``BSCALE`` have been applied.
    """

    BYTE_IMG = 8
    SHORT_IMG = 16
    LONG_IMG = 32
    LONGLONG_IMG = 64
    FLOAT_IMG = -32
    DOUBLE_IMG = -64
    SBYTE_IMG = 10
    USHORT_IMG = 20
    ULONG_IMG = 40
    ULONGLONG_IMG = 80

    @classmethod
    def from_header(cls, bitpix: int, bzero: float = 0.0, bscale: float = 1.0) -> BitDepth:
        """Return the equivalent pixel encoding of an image.

        Parameters
        ----------
        bitpix
            Value of the ``BITPIX`` keyword.
        bzero, optional
            Value of the ``BZERO`` keyword.
        bscale, optional
            Value of the ``BSCALE`` keyword.

        Returns
        -------
        bit_depth
            The type values have after scaling.  Unscaled data just maps
            ``bitpix``.  When both ``BSCALE`` and ``BZERO`` are integers the
            result is the smallest integer type that holds every scaled
            value of the stored type, so the conventional unsigned offsets
            map to the unsigned (or, for 8-bit data, signed) members and
            other integral scalings widen (e.g. 16-bit data with
            ``BZERO = 1`` is `LONG_IMG`).  A range no integer type can hold
            yields `DOUBLE_IMG`.  Non-integral scaling of integer data
            yields `FLOAT_IMG` for 8- and 16-bit data and `DOUBLE_IMG`
            otherwise.

        Raises
        ------
        ValueError
            Raised if ``bitpix`` is not a valid ``BITPIX`` value.
        """
        raw = cls.from_bitpix(bitpix)
        if raw.is_floating or (bzero == 0.0 and bscale == 1.0):
            return raw
        if not (float(bzero).is_integer() and float(bscale).is_integer()):
            return cls.FLOAT_IMG if raw.value <= 16 else cls.DOUBLE_IMG
        info = np.iinfo(raw.to_number_type().to_numpy())
        ends = (int(bscale) * int(info.min) + int(bzero), int(bscale) * int(info.max) + int(bzero))
        low, high = min(ends), max(ends)
        for candidate in _INTEGER_WIDENING:
            candidate_info = np.iinfo(candidate.to_number_type().to_numpy())
            if int(candidate_info.min) <= low and high <= int(candidate_info.max):
                return candidate
        return cls.DOUBLE_IMG

    @classmethod
    def from_bitpix(cls, bitpix: int) -> BitDepth:
        """Return the member for a raw ``BITPIX`` value.

        Raises
        ------
        ValueError
            Raised if ``bitpix`` is not one of 8, 16, 32, 64, -32, -64.
        """
        if bitpix not in (8, 16, 32, 64, -32, -64):
            raise ValueError(f"Unsupported data type: bitpix = {bitpix}.")
        return cls(bitpix)

    @property
    def is_floating(self) -> bool:
        """Whether values are floating point."""
        return self.value < 0

    @property
    def itemsize(self) -> int:
        """Number of bytes per pixel."""
        return np.dtype(self.to_number_type().to_numpy()).itemsize

    @property
    def description(self) -> str:
        """Human-readable description of the encoding."""
        t = self.to_number_type()
        bits = 8 * self.itemsize
        if not t.is_integer:
            return f"{bits}-bit floating point"
        if is_unsigned(t):
            return f"{bits}-bit unsigned integer"
        return f"{bits}-bit signed integer"

    def to_number_type(self) -> NumberType:
        """Return the natural in-memory type for this encoding."""
        return _NUMBER_TYPES[self]


# Candidate equivalent types for integral scaling, narrowest first.
_INTEGER_WIDENING = (
    BitDepth.BYTE_IMG,
    BitDepth.SBYTE_IMG,
    BitDepth.SHORT_IMG,
    BitDepth.USHORT_IMG,
    BitDepth.LONG_IMG,
    BitDepth.ULONG_IMG,
    BitDepth.LONGLONG_IMG,
    BitDepth.ULONGLONG_IMG,
)

_NUMBER_TYPES = {
    BitDepth.BYTE_IMG: NumberType.uint8,
    BitDepth.SBYTE_IMG: NumberType.int8,
    BitDepth.SHORT_IMG: NumberType.int16,
    BitDepth.USHORT_IMG: NumberType.uint16,
    BitDepth.LONG_IMG: NumberType.int32,
    BitDepth.ULONG_IMG: NumberType.uint32,
    BitDepth.LONGLONG_IMG: NumberType.int64,
    BitDepth.ULONGLONG_IMG: NumberType.uint64,
    BitDepth.FLOAT_IMG: NumberType.float32,
    BitDepth.DOUBLE_IMG: NumberType.float64,
}
