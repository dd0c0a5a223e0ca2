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

"""Descriptions of HDUs, header keywords, and image geometry."""

from __future__ import annotations

__all__ = (
    "MAX_COMMENT_LENGTH",
    "MAX_KEYWORD_LENGTH",
    "MAX_VALUE_LENGTH",
    "HDUDescriptor",
    "HDUType",
    "HeaderKey",
    "HeaderSpace",
    "HeaderValue",
    "ImageParameters",
)

import enum
import math
from typing import Annotated, NamedTuple, Self

import pydantic

from ._dtypes import BitDepth

MAX_KEYWORD_LENGTH = 75
"""Maximum length of a keyword name (long enough for HIERARCH keywords)."""

MAX_VALUE_LENGTH = 70
"""Maximum length of a raw keyword value string."""

MAX_COMMENT_LENGTH = 72
"""Maximum length of a keyword comment."""

type HeaderValue = str | int | float | bool | None


class HDUType(enum.StrEnum):
    """The kinds of HDU a FITS file may contain."""

    PRIMARY = "primary"
    IMAGE = "image"
    ASCII_TABLE = "ascii_table"
    BINARY_TABLE = "binary_table"

    @property
    def is_image(self) -> bool:
        """Whether HDUs of this type hold image data.

        Primary HDUs are always images (possibly with no axes), and
        tile-compressed images are reported as `IMAGE`.
        """
        return self is HDUType.PRIMARY or self is HDUType.IMAGE


class HDUDescriptor(pydantic.BaseModel):
    """Description of the HDU under a handle's cursor."""

    index: Annotated[int, pydantic.Field(ge=1)]
    """One-based index of the HDU."""

    type: HDUType
    """Kind of HDU."""

    count: Annotated[int, pydantic.Field(ge=1)]
    """Total number of HDUs in the file."""

    name: str = ""
    """The ``EXTNAME`` of the HDU, if it has one."""

    model_config = pydantic.ConfigDict(frozen=True)


class HeaderSpace(NamedTuple):
    """Number of keywords in a header and the room left for more."""

    existing: int
    """Number of keywords present, not counting ``END``."""

    more: int
    """Number of unused keyword slots in the header's allocated blocks."""


class HeaderKey(pydantic.BaseModel):
    """A single header keyword record."""

    name: Annotated[str, pydantic.Field(max_length=MAX_KEYWORD_LENGTH)]
    """Keyword name."""

    value: Annotated[str, pydantic.Field(max_length=MAX_VALUE_LENGTH)] = ""
    """Value as it is written in the header (strings keep their quotes);
    empty for commentary keywords and undefined values.
    """

    comment: Annotated[str, pydantic.Field(max_length=MAX_COMMENT_LENGTH)] = ""
    """Comment, or the text of a commentary keyword."""

    ordinal: Annotated[int, pydantic.Field(ge=1)]
    """One-based position of the keyword in the header."""

    model_config = pydantic.ConfigDict(frozen=True)

    def parse_value(self) -> HeaderValue:
        """Interpret the raw value string.

        Returns
        -------
        value
            A `str` for quoted values (with the quotes and trailing blanks
            removed), `bool` for ``T`` and ``F``, `int` or `float` for
            numbers, `None` for an empty value, and the raw string for
            anything else (e.g. complex values).
        """
        raw = self.value.strip()
        if not raw:
            return None
        if len(raw) >= 2 and raw.startswith("'") and raw.endswith("'"):
            return raw[1:-1].replace("''", "'").rstrip()
        if raw.upper() == "T":
            return True
        if raw.upper() == "F":
            return False
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            return float(raw.upper().replace("D", "E"))
        except ValueError:
            return raw


class ImageParameters(pydantic.BaseModel):
    """Geometry and pixel encoding of an image HDU."""

    bitpix: BitDepth
    """Pixel encoding as stored (the ``BITPIX`` keyword)."""

    equivalent_bitpix: BitDepth
    """Pixel encoding after ``BZERO`` and ``BSCALE`` are applied."""

    naxis: Annotated[int, pydantic.Field(ge=0)]
    """Number of axes reported (zero for an image HDU with no data)."""

    naxes: tuple[int, ...]
    """Length of each axis, fastest-varying (``NAXIS1``) first."""

    truncated: bool = False
    """Whether trailing axes beyond the supported maximum were dropped."""

    model_config = pydantic.ConfigDict(frozen=True)

    @pydantic.model_validator(mode="after")
    def _check_axes(self) -> Self:
        if len(self.naxes) != self.naxis:
            raise ValueError(f"NAXIS={self.naxis} but {len(self.naxes)} axis lengths were given.")
        if any(n < 0 for n in self.naxes):
            raise ValueError(f"Axis lengths must be non-negative; got {self.naxes}.")
        return self

    @property
    def pixel_count(self) -> int:
        """Total number of pixels described by `naxes` (zero if there are no
        axes).
        """
        return math.prod(self.naxes) if self.naxis else 0

    @property
    def shape(self) -> tuple[int, ...]:
        """Numpy-ordered array shape (the reverse of `naxes`)."""
        return tuple(reversed(self.naxes))
