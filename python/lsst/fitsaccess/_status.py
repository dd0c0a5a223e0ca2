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

"""Translation of format-engine status codes into structured errors.

The format engine reports every failure as a nonzero integer status code, with
the numeric values used by CFITSIO.  Nothing outside the file handle should
ever see those integers directly: they are translated here into an
`ErrorDetail`, which in turn builds the `FitsAccessError` subclass that is
actually raised.
"""

from __future__ import annotations

__all__ = (
    "MAX_ERROR_TEXT",
    "ErrorDetail",
    "StatusCode",
    "status_text",
    "translate",
)

import dataclasses
import enum

from ._errors import ErrorKind, FitsAccessError

MAX_ERROR_TEXT = 80
"""Maximum length of diagnostic text attached to an error."""


class StatusCode(enum.IntEnum):
    """Status codes produced by the format engine (CFITSIO values)."""

    FILE_NOT_OPENED = 104
    END_OF_FILE = 107
    READ_ERROR = 108
    FILE_NOT_CLOSED = 110
    READONLY_FILE = 112
    MEMORY_ALLOCATION = 113
    BAD_FILEPTR = 114
    KEY_NO_EXIST = 202
    KEY_OUT_BOUNDS = 203
    VALUE_UNDEFINED = 204
    NO_END = 210
    BAD_BITPIX = 211
    BAD_NAXIS = 212
    BAD_NAXES = 213
    NO_SIMPLE = 221
    NOT_IMAGE = 233
    NOT_TABLE = 235
    UNKNOWN_EXT = 251
    UNKNOWN_REC = 252
    BAD_HDU_NUM = 301
    BAD_ELEM_NUM = 308
    BAD_DIMEN = 320
    BAD_PIX_NUM = 321
    NEG_AXIS = 323
    BAD_DATATYPE = 410
    NUM_OVERFLOW = 412


_STATUS_TEXT: dict[int, str] = {
    StatusCode.FILE_NOT_OPENED: "could not open the named file",
    StatusCode.END_OF_FILE: "tried to move past end of file",
    StatusCode.FILE_NOT_CLOSED: "could not close the file",
    StatusCode.READ_ERROR: "error reading from FITS file",
    StatusCode.READONLY_FILE: "cannot write to readonly file",
    StatusCode.MEMORY_ALLOCATION: "could not allocate memory",
    StatusCode.BAD_FILEPTR: "invalid fitsfile pointer",
    StatusCode.KEY_NO_EXIST: "keyword not found in header",
    StatusCode.KEY_OUT_BOUNDS: "keyword number out of bounds",
    StatusCode.VALUE_UNDEFINED: "keyword value is undefined",
    StatusCode.NO_END: "END keyword not found",
    StatusCode.BAD_BITPIX: "illegal BITPIX keyword value",
    StatusCode.BAD_NAXIS: "illegal NAXIS keyword value",
    StatusCode.BAD_NAXES: "illegal NAXISn keyword value",
    StatusCode.NO_SIMPLE: "1st key not SIMPLE or XTENSION",
    StatusCode.NOT_IMAGE: "HDU is not an image",
    StatusCode.NOT_TABLE: "HDU is not a table",
    StatusCode.UNKNOWN_EXT: "unknown FITS extension type",
    StatusCode.UNKNOWN_REC: "unknown FITS record type",
    StatusCode.BAD_HDU_NUM: "illegal HDU number",
    StatusCode.BAD_ELEM_NUM: "bad first element number",
    StatusCode.BAD_DIMEN: "illegal number of dimensions",
    StatusCode.BAD_PIX_NUM: "1st pixel no. > last pixel no.",
    StatusCode.NEG_AXIS: "illegal negative image axis",
    StatusCode.BAD_DATATYPE: "illegal datatype code value",
    StatusCode.NUM_OVERFLOW: "datatype conversion overflow",
}

_STATUS_KINDS: dict[int, ErrorKind] = {
    StatusCode.FILE_NOT_OPENED: ErrorKind.OPEN_FAILED,
    StatusCode.NO_SIMPLE: ErrorKind.OPEN_FAILED,
    StatusCode.UNKNOWN_REC: ErrorKind.OPEN_FAILED,
    StatusCode.READONLY_FILE: ErrorKind.OPEN_FAILED,
    StatusCode.BAD_FILEPTR: ErrorKind.HANDLE_CLOSED,
    StatusCode.BAD_HDU_NUM: ErrorKind.INVALID_HDU_INDEX,
    StatusCode.END_OF_FILE: ErrorKind.INVALID_HDU_INDEX,
    StatusCode.KEY_NO_EXIST: ErrorKind.KEY_NOT_FOUND,
    StatusCode.KEY_OUT_BOUNDS: ErrorKind.KEY_NOT_FOUND,
    StatusCode.NOT_IMAGE: ErrorKind.NOT_AN_IMAGE_HDU,
    StatusCode.BAD_DIMEN: ErrorKind.UNSUPPORTED_DIMENSIONALITY,
    StatusCode.READ_ERROR: ErrorKind.READ_FAILED,
    StatusCode.MEMORY_ALLOCATION: ErrorKind.READ_FAILED,
    StatusCode.BAD_ELEM_NUM: ErrorKind.READ_FAILED,
    StatusCode.BAD_PIX_NUM: ErrorKind.READ_FAILED,
    StatusCode.BAD_DATATYPE: ErrorKind.READ_FAILED,
    StatusCode.NUM_OVERFLOW: ErrorKind.READ_FAILED,
}


def status_text(code: int) -> str:
    """Return the format engine's short description of a status code.

    Unknown codes yield an empty string.
    """
    return _STATUS_TEXT.get(code, "")[:MAX_ERROR_TEXT]


@dataclasses.dataclass(frozen=True)
class ErrorDetail:
    """A translated status code."""

    kind: ErrorKind
    """The kind of error the status code corresponds to."""

    status: int
    """The status code that was translated."""

    text: str
    """Diagnostic text from the format engine (possibly empty)."""

    def to_exception(
        self,
        operation: str,
        filename: str | None = None,
        message: str | None = None,
        kind: ErrorKind | None = None,
    ) -> FitsAccessError:
        """Build the exception to raise for this status.

        Parameters
        ----------
        operation
            Name of the operation that failed.
        filename, optional
            File being accessed.
        message, optional
            Additional context (usually the message of the engine's own
            exception).
        kind, optional
            Override for the kind of exception to build, for operations that
            report all failures as a single kind (e.g. `ErrorKind.READ_FAILED`
            for pixel reads).

        Returns
        -------
        error
            Exception instance; the caller is responsible for raising it.
        """
        kind = self.kind if kind is None else kind
        where = f" on {filename!r}" if filename else ""
        parts = [f"{operation} failed{where}: status {self.status}"]
        if self.text:
            parts.append(self.text)
        if message:
            parts.append(message)
        return kind.exception_type(
            ", ".join(parts),
            status=self.status,
            status_text=self.text,
            operation=operation,
            filename=filename,
        )


def translate(code: int) -> ErrorDetail:
    """Translate a nonzero status code into an `ErrorDetail`.

    Parameters
    ----------
    code
        Status code from a format operation.  Unrecognized codes are mapped to
        `ErrorKind.FORMAT_ERROR`.

    Returns
    -------
    detail
        Kind, status, and diagnostic text for the code.

    Raises
    ------
    ValueError
        Raised if ``code`` is zero, which always means success.
    """
    if code == 0:
        raise ValueError("Status 0 means success and cannot be translated into an error.")
    return ErrorDetail(
        kind=_STATUS_KINDS.get(code, ErrorKind.FORMAT_ERROR),
        status=int(code),
        text=status_text(code),
    )
