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
    "ErrorKind",
    "FitsAccessError",
    "FormatError",
    "HandleClosedError",
    "InvalidHDUIndexError",
    "KeyNotFoundError",
    "NotAnImageHDUError",
    "OpenFailedError",
    "ReadFailedError",
    "UnsupportedDimensionalityError",
)

import enum
from typing import ClassVar


class ErrorKind(enum.StrEnum):
    """The kinds of failure reported by this package."""

    OPEN_FAILED = "OpenFailed"
    HANDLE_CLOSED = "HandleClosed"
    INVALID_HDU_INDEX = "InvalidHDUIndex"
    KEY_NOT_FOUND = "KeyNotFound"
    NOT_AN_IMAGE_HDU = "NotAnImageHDU"
    UNSUPPORTED_DIMENSIONALITY = "UnsupportedDimensionality"
    READ_FAILED = "ReadFailed"
    FORMAT_ERROR = "FormatError"

    @property
    def exception_type(self) -> type[FitsAccessError]:
        """The exception class raised for this kind."""
        return _EXCEPTION_TYPES[self]


class FitsAccessError(RuntimeError):
    """Base class for all errors raised when accessing a FITS file.

    Parameters
    ----------
    message
        Human-readable description of the failure.
    status, optional
        The format engine's status code (``0`` if the failure was detected
        before any engine call was made).
    status_text, optional
        The format engine's short description of ``status``.
    operation, optional
        Name of the operation that failed.
    filename, optional
        Name of the file being accessed.
    """

    kind: ClassVar[ErrorKind]

    def __init__(
        self,
        message: str,
        *,
        status: int = 0,
        status_text: str = "",
        operation: str | None = None,
        filename: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.status_text = status_text
        self.operation = operation
        self.filename = filename


class OpenFailedError(FitsAccessError):
    """The file is missing, unreadable, or not a valid FITS file."""

    kind = ErrorKind.OPEN_FAILED


class HandleClosedError(FitsAccessError):
    """An operation was attempted on a closed handle."""

    kind = ErrorKind.HANDLE_CLOSED


class InvalidHDUIndexError(FitsAccessError):
    """A seek target is outside ``[1, hdu_count]``."""

    kind = ErrorKind.INVALID_HDU_INDEX


class KeyNotFoundError(FitsAccessError):
    """A header keyword ordinal is out of range or a name is not present."""

    kind = ErrorKind.KEY_NOT_FOUND


class NotAnImageHDUError(FitsAccessError):
    """An image-only operation was invoked on a table HDU."""

    kind = ErrorKind.NOT_AN_IMAGE_HDU


class UnsupportedDimensionalityError(FitsAccessError):
    """An image has more axes than the configured maximum."""

    kind = ErrorKind.UNSUPPORTED_DIMENSIONALITY


class ReadFailedError(FitsAccessError):
    """Pixel data could not be decoded (I/O, conversion, or bounds)."""

    kind = ErrorKind.READ_FAILED


class FormatError(FitsAccessError):
    """Any other failure reported by the format engine."""

    kind = ErrorKind.FORMAT_ERROR


_EXCEPTION_TYPES: dict[ErrorKind, type[FitsAccessError]] = {
    cls.kind: cls
    for cls in (
        OpenFailedError,
        HandleClosedError,
        InvalidHDUIndexError,
        KeyNotFoundError,
        NotAnImageHDUError,
        UnsupportedDimensionalityError,
        ReadFailedError,
        FormatError,
    )
}
