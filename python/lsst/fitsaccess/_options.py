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
    "AxisPolicy",
    "FitsAccessOptions",
    "OpenMode",
)

import dataclasses
import enum
from typing import ClassVar


class OpenMode(enum.StrEnum):
    """Modes a FITS file may be opened in."""

    READONLY = "readonly"
    READWRITE = "readwrite"

    @classmethod
    def parse(cls, value: str | OpenMode) -> OpenMode:
        """Convert a case-insensitive string into a member.

        Raises
        ------
        ValueError
            Raised if the string is not a recognized mode.
        """
        return cls(str(value).lower())

    def to_astropy(self) -> str:
        """Convert to the mode string used by `astropy.io.fits.open`."""
        match self:
            case self.READONLY:
                return "readonly"
            case self.READWRITE:
                return "update"
        raise AssertionError("Invalid enum value.")


class AxisPolicy(enum.StrEnum):
    """What to do with images that have more axes than supported."""

    FAIL = "fail"
    """Raise `UnsupportedDimensionalityError`."""

    TRUNCATE = "truncate"
    """Drop the trailing axes, treating them as length 1 (i.e. read only the
    first plane along each of them).
    """


@dataclasses.dataclass(frozen=True)
class FitsAccessOptions:
    """Configuration options for `FitsHandle`."""

    max_axes: int = 3
    """Maximum number of image axes reported and read."""

    axis_policy: AxisPolicy = AxisPolicy.FAIL
    """How to handle images with more than `max_axes` axes."""

    memmap: bool = False
    """Whether to memory-map local files."""

    page_size: int = 2880 * 50
    """Minimum number of bytes to read at once from remote files.

    Making this a multiple of the FITS block size (2880) is recommended.
    """

    DEFAULT: ClassVar[FitsAccessOptions]
    """Default options."""

    def __post_init__(self) -> None:
        if self.max_axes < 1:
            raise ValueError(f"max_axes must be positive; got {self.max_axes}.")
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive; got {self.page_size}.")


FitsAccessOptions.DEFAULT = FitsAccessOptions()
