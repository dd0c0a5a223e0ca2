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

"""Adapter that exposes `astropy.io.fits` through CFITSIO-like primitives.

Every primitive either returns its result or raises `EngineStatusError`
carrying a CFITSIO status code; Astropy's own exceptions never escape.  The
adapter does not track a current HDU: callers pass the one-based HDU index to
every primitive.
"""

from __future__ import annotations

__all__ = ("AnyHDU", "EngineStatusError", "FitsEngine", "ImageGeometry")

import math
from typing import IO, NamedTuple

import astropy.io.fits
import fsspec
import numpy as np

from lsst.resources import ResourcePath

from ._dtypes import BitDepth, NumberType
from ._models import (
    MAX_COMMENT_LENGTH,
    MAX_KEYWORD_LENGTH,
    MAX_VALUE_LENGTH,
    HDUType,
    HeaderKey,
    HeaderSpace,
)
from ._options import OpenMode
from ._status import StatusCode, status_text

type AnyHDU = (
    astropy.io.fits.PrimaryHDU
    | astropy.io.fits.ImageHDU
    | astropy.io.fits.CompImageHDU
    | astropy.io.fits.TableHDU
    | astropy.io.fits.BinTableHDU
)

_CARD_LENGTH = 80
_COMMENTARY_KEYWORDS = frozenset({"COMMENT", "HISTORY", ""})


class EngineStatusError(Exception):
    """Exception raised by `FitsEngine` primitives.

    Parameters
    ----------
    status
        CFITSIO status code.
    message, optional
        Additional detail, usually from the underlying Astropy exception.
    """

    def __init__(self, status: int, message: str = ""):
        super().__init__(f"status {status}: {message or status_text(status)}")
        self.status = status
        self.message = message


class ImageGeometry(NamedTuple):
    """Image parameters as reported by `FitsEngine.get_img_param`."""

    bitpix: BitDepth
    equivalent_bitpix: BitDepth
    naxes: tuple[int, ...]


class FitsEngine:
    """Low-level access to an open FITS file.

    Instances should only be constructed via `open`.

    Parameters
    ----------
    hdu_list
        The open Astropy HDU list.
    stream, optional
        A file-like object ``hdu_list`` reads from, owned by this engine.
    """

    def __init__(self, hdu_list: astropy.io.fits.HDUList, stream: IO[bytes] | None = None):
        self._hdu_list = hdu_list
        self._stream = stream
        # Headers are snapshotted on first access, since Astropy may rewrite
        # scaling keywords once pixel data has been loaded.
        self._headers: dict[int, astropy.io.fits.Header] = {}

    @classmethod
    def open(
        cls, path: ResourcePath, mode: OpenMode, *, memmap: bool = False, page_size: int = 2880 * 50
    ) -> FitsEngine:
        """Open a FITS file.

        Parameters
        ----------
        path
            Location of the file.  Local files are opened directly; anything
            else is read through `fsspec`.
        mode
            Access mode.  Remote files only support `OpenMode.READONLY`.
        memmap, optional
            Whether to memory-map local files.
        page_size, optional
            Block size for remote reads.

        Returns
        -------
        engine
            The opened engine.
        """
        stream: IO[bytes] | None = None
        target: str | IO[bytes]
        try:
            try:
                if path.isLocal:
                    target = path.ospath
                else:
                    if mode is not OpenMode.READONLY:
                        raise EngineStatusError(
                            StatusCode.READONLY_FILE, f"{path} is remote and can only be opened read-only."
                        )
                    fs: fsspec.AbstractFileSystem
                    fs, fp = path.to_fsspec()
                    stream = fs.open(fp, mode="rb", block_size=page_size)
                    target = stream
                hdu_list = astropy.io.fits.open(target, mode=mode.to_astropy(), memmap=memmap, cache=False)
            except (FileNotFoundError, PermissionError, IsADirectoryError) as err:
                raise EngineStatusError(StatusCode.FILE_NOT_OPENED, str(err)) from err
            except (OSError, ValueError, TypeError, astropy.io.fits.VerifyError) as err:
                raise EngineStatusError(StatusCode.UNKNOWN_REC, str(err)) from err
        except EngineStatusError:
            if stream is not None:
                stream.close()
            raise
        return cls(hdu_list, stream)

    def close(self) -> None:
        """Release the file.  Must be called exactly once."""
        try:
            self._hdu_list.close()
        except (OSError, ValueError) as err:
            raise EngineStatusError(StatusCode.FILE_NOT_CLOSED, str(err)) from err
        finally:
            self._headers.clear()
            if self._stream is not None:
                self._stream.close()

    def num_hdus(self) -> int:
        """Return the number of HDUs in the file."""
        try:
            return len(self._hdu_list)
        except (OSError, ValueError) as err:
            raise EngineStatusError(StatusCode.READ_ERROR, str(err)) from err

    def movabs_hdu(self, index: int) -> HDUType:
        """Check that an HDU exists and return its type."""
        return self._classify(self._hdu(index))

    def extname(self, index: int) -> str:
        """Return the ``EXTNAME`` of an HDU, or an empty string."""
        return str(self._header(index).get("EXTNAME", "")).strip()

    def get_hdrspace(self, index: int) -> HeaderSpace:
        """Return the number of keywords in an HDU's header and the number
        of unused card slots in its allocated header blocks.

        Tile-compressed HDUs are described by their decompressed image
        header, so their blocks are those that header would occupy on disk.
        """
        header = self._header(index)
        existing = len(header)
        info = None
        if not isinstance(self._hdu(index), astropy.io.fits.CompImageHDU):
            info = self._hdu_list.fileinfo(index - 1)
        if info is not None and info.get("datLoc") is not None:
            allocated = (info["datLoc"] - info["hdrLoc"]) // _CARD_LENGTH
        else:
            allocated = len(header.tostring()) // _CARD_LENGTH
        # One slot always holds END.
        return HeaderSpace(existing=existing, more=max(allocated - existing - 1, 0))

    def read_keyn(self, index: int, ordinal: int) -> HeaderKey:
        """Read the keyword at a one-based position in an HDU's header.

        For tile-compressed HDUs positions refer to the decompressed image
        header Astropy reconstructs, not to the binary table header on disk.
        """
        header = self._header(index)
        if ordinal < 1 or ordinal > len(header):
            raise EngineStatusError(
                StatusCode.KEY_OUT_BOUNDS, f"Keyword {ordinal} is outside [1, {len(header)}]."
            )
        card = header.cards[ordinal - 1]
        name = card.keyword
        if name in _COMMENTARY_KEYWORDS:
            value = ""
            comment = str(card.value)
        else:
            value = _format_value(card.value)
            comment = card.comment
        return HeaderKey(
            name=name[:MAX_KEYWORD_LENGTH],
            value=value[:MAX_VALUE_LENGTH],
            comment=comment[:MAX_COMMENT_LENGTH],
            ordinal=ordinal,
        )

    def get_img_param(self, index: int) -> ImageGeometry:
        """Read the pixel encoding and all axis lengths of an image HDU."""
        hdu = self._hdu(index)
        if not self._classify(hdu).is_image or isinstance(hdu, astropy.io.fits.GroupsHDU):
            raise EngineStatusError(StatusCode.NOT_IMAGE, f"HDU {index} is a {type(hdu).__name__}.")
        header = self._header(index)
        try:
            bitpix = int(header["BITPIX"])
        except (KeyError, ValueError, TypeError) as err:
            raise EngineStatusError(StatusCode.BAD_BITPIX, str(err)) from err
        try:
            naxis = int(header["NAXIS"])
        except (KeyError, ValueError, TypeError) as err:
            raise EngineStatusError(StatusCode.BAD_NAXIS, str(err)) from err
        if naxis < 0:
            raise EngineStatusError(StatusCode.BAD_NAXIS, f"NAXIS={naxis}.")
        try:
            naxes = tuple(int(header[f"NAXIS{i}"]) for i in range(1, naxis + 1))
        except (KeyError, ValueError, TypeError) as err:
            raise EngineStatusError(StatusCode.BAD_NAXES, str(err)) from err
        if any(n < 0 for n in naxes):
            raise EngineStatusError(StatusCode.NEG_AXIS, f"NAXISn={naxes}.")
        try:
            raw = BitDepth.from_bitpix(bitpix)
            equivalent = BitDepth.from_header(
                bitpix, bzero=header.get("BZERO", 0.0), bscale=header.get("BSCALE", 1.0)
            )
        except ValueError as err:
            raise EngineStatusError(StatusCode.BAD_BITPIX, str(err)) from err
        return ImageGeometry(raw, equivalent, naxes)

    def read_pix(
        self,
        index: int,
        datatype: NumberType,
        offset: int,
        count: int,
        null_value: int | float | None = None,
    ) -> tuple[np.ndarray, bool]:
        """Read a run of consecutive pixels from an image HDU.

        Parameters
        ----------
        index
            One-based HDU index.
        datatype
            Type to convert the values to.
        offset
            Zero-based position of the first pixel in the image's linear pixel
            stream.
        count
            Number of pixels to read.
        null_value, optional
            Value that marks undefined pixels.  Undefined pixels in the file
            (``BLANK`` integers or NaNs) are replaced with it, and any pixel
            equal to it is reported as null.  If `None`, nothing is null.

        Returns
        -------
        array
            Newly-allocated one-dimensional array of ``count`` values.
        any_null
            Whether any value was flagged as undefined.
        """
        geometry = self.get_img_param(index)
        header = self._header(index)
        total = math.prod(geometry.naxes) if geometry.naxes else 0
        if offset < 0:
            raise EngineStatusError(StatusCode.BAD_ELEM_NUM, f"First pixel offset {offset} is negative.")
        if count < 0 or offset + count > total:
            raise EngineStatusError(
                StatusCode.BAD_PIX_NUM,
                f"Pixels [{offset}, {offset + count}) are outside an image with {total} pixels.",
            )
        if count == 0:
            return np.zeros(0, dtype=datatype.to_numpy()), False
        shape = tuple(reversed(geometry.naxes))
        row_size = math.prod(shape[1:])
        first_row = offset // row_size
        last_row = (offset + count - 1) // row_size
        hdu = self._hdu(index)
        try:
            slab = np.asarray(hdu.section[first_row : last_row + 1])
        except MemoryError as err:
            raise EngineStatusError(StatusCode.MEMORY_ALLOCATION, str(err)) from err
        except (OSError, ValueError, TypeError, IndexError) as err:
            raise EngineStatusError(StatusCode.READ_ERROR, str(err)) from err
        start = offset - first_row * row_size
        run = slab.reshape(-1)[start : start + count]
        undefined = np.isnan(run) if run.dtype.kind == "f" else np.zeros(run.shape, dtype=bool)
        if not geometry.bitpix.is_floating and "BLANK" in header:
            blank = header["BLANK"] * header.get("BSCALE", 1) + header.get("BZERO", 0)
            if run.dtype.kind in "iu":
                undefined = run == blank
            elif null_value is None and undefined.any():
                # Astropy turns BLANK pixels into NaN; with no null value they
                # keep their physical value instead.
                run = np.where(undefined, blank, run)
                undefined = np.zeros(run.shape, dtype=bool)
        return _convert(run, datatype, undefined, null_value)

    def _hdu(self, index: int) -> AnyHDU:
        n = self.num_hdus()
        if index < 1:
            raise EngineStatusError(StatusCode.BAD_HDU_NUM, f"HDU {index} is outside [1, {n}].")
        if index > n:
            raise EngineStatusError(StatusCode.END_OF_FILE, f"HDU {index} is outside [1, {n}].")
        return self._hdu_list[index - 1]

    def _header(self, index: int) -> astropy.io.fits.Header:
        if (header := self._headers.get(index)) is None:
            header = self._hdu(index).header.copy()
            self._headers[index] = header
        return header

    @staticmethod
    def _classify(hdu: AnyHDU) -> HDUType:
        # CompImageHDU has been a subclass of BinTableHDU in some Astropy
        # versions, so it has to be tested first.
        match hdu:
            case astropy.io.fits.PrimaryHDU():
                return HDUType.PRIMARY
            case astropy.io.fits.CompImageHDU() | astropy.io.fits.ImageHDU():
                return HDUType.IMAGE
            case astropy.io.fits.TableHDU():
                return HDUType.ASCII_TABLE
            case astropy.io.fits.BinTableHDU():
                return HDUType.BINARY_TABLE
        raise EngineStatusError(StatusCode.UNKNOWN_EXT, f"Unsupported HDU type {type(hdu).__name__}.")


def _format_value(value: object) -> str:
    """Format a parsed header value the way it is written in a card."""
    match value:
        case astropy.io.fits.card.Undefined() | None:
            return ""
        case bool() | np.bool_():
            return "T" if value else "F"
        case str():
            return "'" + value.replace("'", "''").ljust(8) + "'"
        case int() | np.integer():
            return str(int(value))
        case float() | np.floating():
            return repr(float(value)).upper()
        case complex() | np.complexfloating():
            return f"({repr(value.real).upper()}, {repr(value.imag).upper()})"
    return str(value)


def _convert(
    run: np.ndarray,
    datatype: NumberType,
    undefined: np.ndarray,
    null_value: int | float | None,
) -> tuple[np.ndarray, bool]:
    """Convert raw pixel values to the requested type, applying null
    substitution.
    """
    dtype = np.dtype(datatype.to_numpy())
    has_undefined = bool(undefined.any())
    if dtype.kind in "iu":
        info = np.iinfo(dtype)
        if null_value is not None and (
            not float(null_value).is_integer() or not (info.min <= int(null_value) <= info.max)
        ):
            raise EngineStatusError(
                StatusCode.NUM_OVERFLOW, f"Null value {null_value!r} cannot be represented as {datatype}."
            )
        values = run
        if has_undefined and null_value is not None:
            values = np.where(undefined, 0, run)
        elif has_undefined and run.dtype.kind == "f":
            raise EngineStatusError(
                StatusCode.NUM_OVERFLOW, f"Undefined (NaN) pixels cannot be converted to {datatype}."
            )
        if values.dtype.kind == "f":
            values = np.trunc(values)
            out_of_range = values.size and (values.min() < info.min or values.max() >= info.max + 1)
        else:
            out_of_range = values.size and (values.min() < info.min or values.max() > info.max)
        if out_of_range:
            raise EngineStatusError(
                StatusCode.NUM_OVERFLOW, f"Pixel values do not fit in {datatype} [{info.min}, {info.max}]."
            )
        result = values.astype(dtype)
    else:
        if dtype.itemsize < run.dtype.itemsize or run.dtype.kind in "iu":
            finite = run[np.isfinite(run)] if run.dtype.kind == "f" else run
            limit = np.finfo(dtype).max
            if finite.size and (finite.min() < -limit or finite.max() > limit):
                raise EngineStatusError(StatusCode.NUM_OVERFLOW, f"Pixel values do not fit in {datatype}.")
        result = run.astype(dtype)
    if null_value is None:
        return result, False
    if has_undefined:
        result[undefined] = null_value
    return result, has_undefined or bool((result == null_value).any())
