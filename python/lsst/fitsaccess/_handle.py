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

__all__ = ("FitsHandle",)

from collections.abc import Sequence
from logging import getLogger
from types import TracebackType
from typing import Self

import numpy as np
import numpy.typing as npt

from lsst.resources import ResourcePath, ResourcePathExpression

from ._buffer import FitsImage, PixelBuffer
from ._dtypes import NumberType
from ._engine import EngineStatusError, FitsEngine
from ._errors import ErrorKind, FitsAccessError
from ._models import HDUDescriptor, HeaderKey, HeaderSpace, HeaderValue, ImageParameters
from ._options import AxisPolicy, FitsAccessOptions, OpenMode
from ._status import StatusCode, translate
from ._window import PixelWindow

_LOG = getLogger(__name__)

_INT64_MAX = int(np.iinfo(np.int64).max)

# Kinds that pixel reads report as-is instead of as READ_FAILED.
_READ_PASSTHROUGH_KINDS = frozenset(
    {
        ErrorKind.HANDLE_CLOSED,
        ErrorKind.NOT_AN_IMAGE_HDU,
        ErrorKind.UNSUPPORTED_DIMENSIONALITY,
        ErrorKind.INVALID_HDU_INDEX,
    }
)

_COMMENTARY_KEYWORDS = frozenset({"COMMENT", "HISTORY", ""})


class FitsHandle:
    """An open FITS file with an explicit current-HDU cursor.

    Instances should only be constructed via `open`.

    Parameters
    ----------
    engine
        Low-level access to the open file, exclusively owned by the handle.
    filename
        Name of the file, for diagnostics.
    mode
        Mode the file was opened in.
    options
        Configuration options.

    Notes
    -----
    Handles are not thread-safe: the cursor is shared state, and the
    underlying file object does not support concurrent access.  Give each
    thread its own handle or serialize access externally.

    All failures are raised as subclasses of `FitsAccessError`.  Once `close`
    has been called, every operation raises `HandleClosedError`.
    """

    def __init__(self, engine: FitsEngine, filename: str, mode: OpenMode, options: FitsAccessOptions):
        self._engine: FitsEngine | None = engine
        self._filename = filename
        self._mode = mode
        self._options = options
        self._current_hdu = 1

    @classmethod
    def open(
        cls,
        path: ResourcePathExpression,
        mode: str | OpenMode = OpenMode.READONLY,
        *,
        options: FitsAccessOptions | None = None,
    ) -> FitsHandle:
        """Open a FITS file.

        Parameters
        ----------
        path
            File to read; convertible to `lsst.resources.ResourcePath`.
        mode, optional
            Access mode (`OpenMode` or a case-insensitive string such as
            ``"READONLY"``).  This package never writes, even in
            ``readwrite`` mode.
        options, optional
            Configuration options; `FitsAccessOptions.DEFAULT` if not
            provided.

        Returns
        -------
        handle
            Open handle positioned at the primary HDU.

        Raises
        ------
        OpenFailedError
            Raised if the file does not exist, is not a valid FITS file, or
            the mode is not supported.
        """
        if options is None:
            options = FitsAccessOptions.DEFAULT
        filename = str(path)
        try:
            open_mode = OpenMode.parse(mode)
        except ValueError:
            raise translate(StatusCode.FILE_NOT_OPENED).to_exception(
                "open", filename, f"Unsupported mode {mode!r}.", kind=ErrorKind.OPEN_FAILED
            ) from None
        try:
            resource = ResourcePath(path)
            engine = FitsEngine.open(
                resource, open_mode, memmap=options.memmap, page_size=options.page_size
            )
        except EngineStatusError as err:
            raise _translated("open", err, filename, kind=ErrorKind.OPEN_FAILED) from err
        except ValueError as err:
            raise translate(StatusCode.FILE_NOT_OPENED).to_exception(
                "open", filename, str(err), kind=ErrorKind.OPEN_FAILED
            ) from err
        _LOG.debug("Opened %s in %s mode.", filename, open_mode)
        return cls(engine, filename, open_mode, options)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        type: type[BaseException] | None,
        value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"hdu={self._current_hdu}"
        return f"FitsHandle({self._filename!r}, {self._mode}, {state})"

    @property
    def filename(self) -> str:
        """Name of the file, as passed to `open`."""
        return self._filename

    @property
    def mode(self) -> OpenMode:
        """Mode the file was opened in."""
        return self._mode

    @property
    def options(self) -> FitsAccessOptions:
        """Configuration options."""
        return self._options

    @property
    def closed(self) -> bool:
        """Whether `close` has been called."""
        return self._engine is None

    @property
    def current_hdu(self) -> int:
        """One-based index of the HDU under the cursor.

        This only changes via `seek` (or `read_image` with an explicit
        index).
        """
        return self._current_hdu

    def close(self) -> None:
        """Release the file.

        Calling this more than once is safe; later calls do nothing.

        Raises
        ------
        FormatError
            Raised if the underlying file could not be closed cleanly.  The
            handle is closed regardless.
        """
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        try:
            engine.close()
        except EngineStatusError as err:
            raise _translated("close", err, self._filename) from err
        _LOG.debug("Closed %s.", self._filename)

    def hdu_count(self) -> int:
        """Return the total number of HDUs in the file."""
        engine = self._require_open("hdu_count")
        try:
            return engine.num_hdus()
        except EngineStatusError as err:
            raise _translated("hdu_count", err, self._filename) from err

    def seek(self, index: int) -> HDUDescriptor:
        """Move the cursor to an HDU.

        Parameters
        ----------
        index
            One-based index of the HDU.

        Returns
        -------
        descriptor
            Description of the new current HDU.

        Raises
        ------
        InvalidHDUIndexError
            Raised if ``index`` is outside ``[1, hdu_count()]``.  The cursor
            is not moved.
        """
        descriptor = self._describe("seek", index)
        if descriptor.index != self._current_hdu:
            _LOG.debug("Moved to HDU %d of %s.", descriptor.index, self._filename)
        self._current_hdu = descriptor.index
        return descriptor

    def descriptor(self) -> HDUDescriptor:
        """Describe the current HDU without moving the cursor."""
        return self._describe("descriptor", self._current_hdu)

    def header_key_count(self) -> HeaderSpace:
        """Return the number of keywords in the current HDU's header and the
        number of unused keyword slots in its allocated header blocks.

        For tile-compressed image HDUs both counts describe the decompressed
        image header (see `read_key`).
        """
        return self._header_space("header_key_count")

    def read_key(self, ordinal: int) -> HeaderKey:
        """Read a keyword from the current HDU's header by position.

        Parameters
        ----------
        ordinal
            One-based position of the keyword, in on-disk order.

        Returns
        -------
        key
            The keyword's name, raw value string, and comment.

        Raises
        ------
        KeyNotFoundError
            Raised if ``ordinal`` is outside ``[1, header_key_count().existing]``.

        Notes
        -----
        Tile-compressed image HDUs are stored as binary tables.  Their keywords
        are read from the decompressed image header (``XTENSION='IMAGE'``, the
        image's ``BITPIX`` and ``NAXISn``, no ``Z*`` keywords), so ordinals
        follow that header rather than the physical order on disk.
        """
        return self._read_key("read_key", ordinal)

    def find_key(self, name: str) -> HeaderKey:
        """Find the first keyword in the current HDU's header with the given
        name (case-insensitive).

        Raises
        ------
        KeyNotFoundError
            Raised if there is no such keyword.
        """
        target = name.strip().upper()
        space = self._header_space("find_key")
        for ordinal in range(1, space.existing + 1):
            key = self._read_key("find_key", ordinal)
            if key.name.upper() == target:
                return key
        raise translate(StatusCode.KEY_NO_EXIST).to_exception(
            "find_key", self._filename, f"No keyword {name!r} in HDU {self._current_hdu}."
        )

    def read_header(self) -> dict[str, HeaderValue]:
        """Read all value-bearing keywords of the current HDU.

        Returns
        -------
        header
            Mapping from keyword name to interpreted value (see
            `HeaderKey.parse_value`).  Commentary keywords are skipped; if a
            name appears more than once the last value wins.
        """
        space = self._header_space("read_header")
        result: dict[str, HeaderValue] = {}
        for ordinal in range(1, space.existing + 1):
            key = self._read_key("read_header", ordinal)
            if key.name in _COMMENTARY_KEYWORDS:
                continue
            result[key.name] = key.parse_value()
        return result

    def image_parameters(self) -> ImageParameters:
        """Read the pixel encoding and geometry of the current HDU.

        Returns
        -------
        parameters
            Bit depth, axis count, and axis lengths.

        Raises
        ------
        NotAnImageHDUError
            Raised if the current HDU is a table.
        UnsupportedDimensionalityError
            Raised if the image has more than ``options.max_axes`` axes and
            ``options.axis_policy`` is `AxisPolicy.FAIL`.
        """
        return self._image_parameters("image_parameters")

    def read_pixels(
        self,
        datatype: NumberType | npt.DTypeLike,
        first_pixel: Sequence[int] | None = None,
        counts: Sequence[int] | None = None,
        *,
        null_value: int | float | None = None,
    ) -> PixelBuffer:
        """Read a contiguous run of pixels from the current HDU.

        Parameters
        ----------
        datatype
            Type to decode values into, regardless of how they are stored.
        first_pixel, optional
            One-based coordinates of the first pixel, ``NAXIS1`` first.
            Defaults to the start of the image.
        counts, optional
            Number of pixels along each axis.  Defaults to the full image.
        null_value, optional
            Value that marks undefined pixels.  Undefined pixels in the file
            (``BLANK`` integers or NaNs) are replaced with it and any pixel
            equal to it sets `PixelBuffer.any_null`.  If not provided, no
            pixel is null.

        Returns
        -------
        buffer
            Decoded values.

        Raises
        ------
        ReadFailedError
            Raised if the window is malformed, outside the image, or not a
            single contiguous run of pixels (see `read_window`), or if the
            values cannot be decoded or converted to ``datatype``.
        NotAnImageHDUError
            Raised if the current HDU is a table.
        UnsupportedDimensionalityError
            Raised if the image has too many axes (see `image_parameters`).
        """
        operation = "read_pixels"
        engine = self._require_open(operation)
        number_type = self._parse_datatype(operation, datatype)
        parameters = self._image_parameters(operation)
        window = self._make_window(operation, parameters, first_pixel, counts)
        if window is None:
            return PixelBuffer.empty(number_type)
        if not window.is_contiguous_within(parameters.naxes):
            raise translate(StatusCode.BAD_PIX_NUM).to_exception(
                operation,
                self._filename,
                f"{window} is not a contiguous run of pixels; use read_window instead.",
            )
        array, any_null = self._read_run(operation, engine, parameters, number_type, window, null_value)
        return PixelBuffer(array, number_type, any_null, window.counts)

    def read_window(
        self,
        datatype: NumberType | npt.DTypeLike,
        first_pixel: Sequence[int],
        counts: Sequence[int],
        *,
        null_value: int | float | None = None,
    ) -> PixelBuffer:
        """Read an arbitrary rectangular window of pixels from the current
        HDU.

        Parameters are the same as for `read_pixels`; the window is split into
        as few contiguous runs as possible, each read separately.  No buffer
        is returned unless every run succeeds.
        """
        operation = "read_window"
        engine = self._require_open(operation)
        number_type = self._parse_datatype(operation, datatype)
        parameters = self._image_parameters(operation)
        window = self._make_window(operation, parameters, first_pixel, counts)
        if window is None:
            return PixelBuffer.empty(number_type)
        arrays: list[np.ndarray] = []
        any_null = False
        for run in window.runs(parameters.naxes):
            array, run_any_null = self._read_run(
                operation, engine, parameters, number_type, run, null_value
            )
            arrays.append(array)
            any_null = any_null or run_any_null
        _LOG.debug("Read %s from %s in %d runs.", window, self._filename, len(arrays))
        return PixelBuffer(np.concatenate(arrays), number_type, any_null, window.counts)

    def read_image(
        self,
        index: int | None = None,
        datatype: NumberType | npt.DTypeLike = NumberType.float32,
        *,
        null_value: int | float | None = None,
    ) -> FitsImage:
        """Read an entire image HDU, including its header.

        Parameters
        ----------
        index, optional
            One-based index of the HDU to read; the cursor is moved there
            first.  If not provided, the current HDU is read.
        datatype, optional
            Type to decode values into.
        null_value, optional
            Value that marks undefined pixels (see `read_pixels`).

        Returns
        -------
        image
            Header, geometry, and pixels.
        """
        if index is not None:
            self.seek(index)
        header = self.read_header()
        parameters = self.image_parameters()
        pixels = self.read_pixels(datatype, null_value=null_value)
        _LOG.debug(
            "Read %s image %s from HDU %d of %s.",
            parameters.bitpix.description,
            "x".join(str(n) for n in parameters.naxes),
            self._current_hdu,
            self._filename,
        )
        return FitsImage(index=self._current_hdu, parameters=parameters, header=header, pixels=pixels)

    def _require_open(self, operation: str) -> FitsEngine:
        if self._engine is None:
            raise translate(StatusCode.BAD_FILEPTR).to_exception(
                operation, self._filename, "The handle has been closed."
            )
        return self._engine

    def _describe(self, operation: str, index: int) -> HDUDescriptor:
        engine = self._require_open(operation)
        try:
            hdu_type = engine.movabs_hdu(index)
            return HDUDescriptor(
                index=index, type=hdu_type, count=engine.num_hdus(), name=engine.extname(index)
            )
        except EngineStatusError as err:
            raise _translated(operation, err, self._filename) from err

    def _header_space(self, operation: str) -> HeaderSpace:
        engine = self._require_open(operation)
        try:
            return engine.get_hdrspace(self._current_hdu)
        except EngineStatusError as err:
            raise _translated(operation, err, self._filename) from err

    def _read_key(self, operation: str, ordinal: int) -> HeaderKey:
        engine = self._require_open(operation)
        try:
            return engine.read_keyn(self._current_hdu, ordinal)
        except EngineStatusError as err:
            raise _translated(operation, err, self._filename) from err

    def _image_parameters(self, operation: str) -> ImageParameters:
        engine = self._require_open(operation)
        try:
            geometry = engine.get_img_param(self._current_hdu)
        except EngineStatusError as err:
            raise _translated(operation, err, self._filename) from err
        naxes = geometry.naxes
        truncated = False
        if len(naxes) > self._options.max_axes:
            if self._options.axis_policy is AxisPolicy.FAIL:
                raise translate(StatusCode.BAD_DIMEN).to_exception(
                    operation,
                    self._filename,
                    f"HDU {self._current_hdu} has {len(naxes)} axes; "
                    f"at most {self._options.max_axes} are supported.",
                )
            _LOG.warning(
                "HDU %d of %s has %d axes; only the first %d will be used.",
                self._current_hdu,
                self._filename,
                len(naxes),
                self._options.max_axes,
            )
            naxes = naxes[: self._options.max_axes]
            truncated = True
        return ImageParameters(
            bitpix=geometry.bitpix,
            equivalent_bitpix=geometry.equivalent_bitpix,
            naxis=len(naxes),
            naxes=naxes,
            truncated=truncated,
        )

    def _parse_datatype(self, operation: str, datatype: NumberType | npt.DTypeLike) -> NumberType:
        if isinstance(datatype, NumberType):
            return datatype
        try:
            return NumberType.from_numpy(datatype)
        except (TypeError, ValueError) as err:
            raise translate(StatusCode.BAD_DATATYPE).to_exception(
                operation, self._filename, f"Unsupported datatype {datatype!r}: {err}"
            ) from err

    def _make_window(
        self,
        operation: str,
        parameters: ImageParameters,
        first_pixel: Sequence[int] | None,
        counts: Sequence[int] | None,
    ) -> PixelWindow | None:
        """Build and validate the window to read, or return `None` if the
        image has no pixels and no explicit window was requested.
        """
        if parameters.pixel_count == 0:
            if first_pixel is None and counts is None:
                return None
            raise translate(StatusCode.BAD_PIX_NUM).to_exception(
                operation, self._filename, f"HDU {self._current_hdu} has no pixels."
            )
        if first_pixel is None:
            first_pixel = (1,) * parameters.naxis
        if counts is None:
            counts = parameters.naxes
        if len(first_pixel) != parameters.naxis or len(counts) != parameters.naxis:
            raise translate(StatusCode.BAD_DIMEN).to_exception(
                operation,
                self._filename,
                f"Window has {len(first_pixel)} coordinates and {len(counts)} counts "
                f"but the image has {parameters.naxis} axes.",
                kind=ErrorKind.READ_FAILED,
            )
        try:
            window = PixelWindow(first_pixel, counts)
        except ValueError as err:
            raise translate(StatusCode.BAD_ELEM_NUM).to_exception(
                operation, self._filename, str(err)
            ) from err
        if not window.is_within(parameters.naxes):
            raise translate(StatusCode.BAD_PIX_NUM).to_exception(
                operation,
                self._filename,
                f"{window} extends beyond an image with axes {parameters.naxes}.",
            )
        return window

    def _read_run(
        self,
        operation: str,
        engine: FitsEngine,
        parameters: ImageParameters,
        number_type: NumberType,
        window: PixelWindow,
        null_value: int | float | None,
    ) -> tuple[np.ndarray, bool]:
        # Dropped (truncated) axes sit at coordinate 1, so they add nothing to
        # the offset.
        offset = window.linear_offset(parameters.naxes)
        count = window.size
        if offset + count > _INT64_MAX:
            raise translate(StatusCode.NUM_OVERFLOW).to_exception(
                operation, self._filename, f"{window} does not fit in 64-bit pixel offsets."
            )
        try:
            array, any_null = engine.read_pix(self._current_hdu, number_type, offset, count, null_value)
        except EngineStatusError as err:
            detail = translate(err.status)
            kind = None if detail.kind in _READ_PASSTHROUGH_KINDS else ErrorKind.READ_FAILED
            raise detail.to_exception(operation, self._filename, err.message, kind=kind) from err
        _LOG.debug("Read %d pixels at offset %d of HDU %d.", count, offset, self._current_hdu)
        return array, any_null


def _translated(
    operation: str, err: EngineStatusError, filename: str, kind: ErrorKind | None = None
) -> FitsAccessError:
    """Convert an engine failure into the exception to raise."""
    return translate(err.status).to_exception(operation, filename, err.message, kind=kind)
