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

"""Writers for small FITS files used by the test suite."""

from __future__ import annotations

__all__ = (
    "BLANK_SENTINEL",
    "BLANK_POSITION",
    "SAMPLES",
    "make_gradient",
    "write_blank_image",
    "write_cube",
    "write_multi_extension",
    "write_samples",
    "write_scaled_image",
    "write_simple_image",
    "write_unsigned_image",
)

import os
from collections.abc import Callable

import astropy.io.fits
import numpy as np
import numpy.typing as npt

BLANK_SENTINEL = -999
"""Value of the ``BLANK`` keyword and the undefined pixel in
`write_blank_image`.
"""

BLANK_POSITION = (2, 3)
"""One-based ``(x, y)`` FITS coordinates of the undefined pixel in
`write_blank_image`.
"""


def make_gradient(shape: tuple[int, ...], dtype: npt.DTypeLike = np.int16) -> np.ndarray:
    """Return an array whose values are their own C-order positions."""
    return np.arange(int(np.prod(shape)), dtype=dtype).reshape(shape)


def write_simple_image(path: str, data: np.ndarray, **cards: object) -> None:
    """Write a single-HDU file holding ``data`` in its primary HDU, with any
    extra header cards given as keyword arguments.
    """
    hdu = astropy.io.fits.PrimaryHDU(data)
    for key, value in cards.items():
        hdu.header[key] = value
    hdu.writeto(path, overwrite=True)


def write_blank_image(path: str) -> np.ndarray:
    """Write a 4x4 16-bit image with one pixel set to `BLANK_SENTINEL` and
    return its data.
    """
    data = make_gradient((4, 4), np.int16)
    x, y = BLANK_POSITION
    data[y - 1, x - 1] = BLANK_SENTINEL
    write_simple_image(path, data, BLANK=BLANK_SENTINEL)
    return data


def write_unsigned_image(path: str) -> np.ndarray:
    """Write a 16-bit unsigned image (``BITPIX=16``, ``BZERO=32768``) and
    return its data.
    """
    data = make_gradient((3, 5), np.uint16) * 1000 + 40000
    write_simple_image(path, data)
    return data


def write_scaled_image(path: str) -> np.ndarray:
    """Write a 16-bit integer image with ``BSCALE=0.5`` and ``BZERO=10`` and
    return its physical values.
    """
    physical = make_gradient((4, 6), np.float64) * 0.5 + 10.0
    # Scaling rewrites the HDU's array in place.
    hdu = astropy.io.fits.PrimaryHDU(physical.copy())
    hdu.scale("int16", bscale=0.5, bzero=10.0)
    hdu.writeto(path, overwrite=True)
    return physical


def write_cube(path: str, shape: tuple[int, ...] = (2, 3, 4, 5)) -> np.ndarray:
    """Write an image with the given numpy-ordered shape (four axes by
    default) and return its data.
    """
    data = make_gradient(shape, np.int32)
    write_simple_image(path, data)
    return data


def write_multi_extension(path: str) -> dict[str, np.ndarray]:
    """Write a file with a data-less primary HDU, a float image extension, a
    binary table, an ASCII table, and a tile-compressed image.

    Returns
    -------
    data
        Image arrays, keyed by ``EXTNAME``.
    """
    sci = make_gradient((6, 8), np.float32) / 4
    sci[0, 1] = np.nan
    compressed = make_gradient((8, 8), np.int32)
    primary = astropy.io.fits.PrimaryHDU()
    primary.header["OBSERVER"] = ("Rubin", "Who took the data")
    primary.header["EXPTIME"] = (30.0, "[s] exposure time")
    primary.header["FILTER"] = "r"
    primary.header["DOMECLSD"] = False
    primary.header["COMMENT"] = "A comment card."
    hdus = astropy.io.fits.HDUList(
        [
            primary,
            astropy.io.fits.ImageHDU(sci, name="SCI"),
            astropy.io.fits.BinTableHDU.from_columns(
                [astropy.io.fits.Column(name="flux", format="D", array=np.linspace(0.0, 1.0, 5))],
                name="CATALOG",
            ),
            astropy.io.fits.TableHDU.from_columns(
                [astropy.io.fits.Column(name="id", format="I5", array=np.arange(3))],
                name="ASCII",
            ),
            astropy.io.fits.CompImageHDU(compressed, name="COMPRESSED", compression_type="GZIP_2"),
        ]
    )
    hdus.writeto(path, overwrite=True)
    return {"SCI": sci, "COMPRESSED": compressed}


SAMPLES: dict[str, Callable[[str], object]] = {
    "blank.fits": write_blank_image,
    "unsigned.fits": write_unsigned_image,
    "scaled.fits": write_scaled_image,
    "cube.fits": write_cube,
    "multi_extension.fits": write_multi_extension,
}
"""Sample files written by `write_samples`, keyed by filename."""


def write_samples(directory: str) -> list[str]:
    """Write every file in `SAMPLES` to a directory.

    Returns
    -------
    paths
        Paths of the files written.
    """
    os.makedirs(directory, exist_ok=True)
    paths = []
    for filename, writer in SAMPLES.items():
        path = os.path.join(directory, filename)
        writer(path)
        paths.append(path)
    return paths
