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

import os
import tempfile
import unittest

import pydantic

from lsst.fitsaccess import (
    AxisPolicy,
    BitDepth,
    FitsAccessOptions,
    FitsHandle,
    ImageParameters,
    NotAnImageHDUError,
    StatusCode,
    UnsupportedDimensionalityError,
)
from lsst.fitsaccess.tests import assert_fits_error, write_samples


class ImageParametersTestCase(unittest.TestCase):
    """Tests for FitsHandle.image_parameters."""

    @classmethod
    def setUpClass(cls) -> None:
        cls.directory = cls.enterClassContext(tempfile.TemporaryDirectory())
        write_samples(cls.directory)

    def path(self, filename: str) -> str:
        return os.path.join(self.directory, filename)

    def test_model(self) -> None:
        parameters = ImageParameters(
            bitpix=BitDepth.SHORT_IMG, equivalent_bitpix=BitDepth.SHORT_IMG, naxis=2, naxes=(4, 3)
        )
        self.assertEqual(parameters.pixel_count, 12)
        self.assertEqual(parameters.shape, (3, 4))
        self.assertFalse(parameters.truncated)
        with self.assertRaises(pydantic.ValidationError):
            ImageParameters(
                bitpix=BitDepth.SHORT_IMG, equivalent_bitpix=BitDepth.SHORT_IMG, naxis=2, naxes=(4,)
            )
        with self.assertRaises(pydantic.ValidationError):
            ImageParameters(
                bitpix=BitDepth.SHORT_IMG, equivalent_bitpix=BitDepth.SHORT_IMG, naxis=1, naxes=(-1,)
            )

    def test_simple(self) -> None:
        with FitsHandle.open(self.path("blank.fits")) as handle:
            parameters = handle.image_parameters()
        self.assertIs(parameters.bitpix, BitDepth.SHORT_IMG)
        self.assertIs(parameters.equivalent_bitpix, BitDepth.SHORT_IMG)
        self.assertEqual(parameters.naxis, 2)
        self.assertEqual(parameters.naxes, (4, 4))
        self.assertEqual(parameters.pixel_count, 16)

    def test_scaling(self) -> None:
        with FitsHandle.open(self.path("unsigned.fits")) as handle:
            parameters = handle.image_parameters()
        self.assertIs(parameters.bitpix, BitDepth.SHORT_IMG)
        self.assertIs(parameters.equivalent_bitpix, BitDepth.USHORT_IMG)
        self.assertEqual(parameters.naxes, (5, 3))
        with FitsHandle.open(self.path("scaled.fits")) as handle:
            parameters = handle.image_parameters()
        self.assertIs(parameters.bitpix, BitDepth.SHORT_IMG)
        self.assertIs(parameters.equivalent_bitpix, BitDepth.FLOAT_IMG)
        self.assertEqual(parameters.naxes, (6, 4))

    def test_extensions(self) -> None:
        with FitsHandle.open(self.path("multi_extension.fits")) as handle:
            primary = handle.image_parameters()
            self.assertEqual(primary.naxis, 0)
            self.assertEqual(primary.naxes, ())
            self.assertEqual(primary.pixel_count, 0)
            handle.seek(2)
            sci = handle.image_parameters()
            self.assertIs(sci.bitpix, BitDepth.FLOAT_IMG)
            self.assertEqual(sci.naxes, (8, 6))
            handle.seek(5)
            compressed = handle.image_parameters()
            self.assertIs(compressed.bitpix, BitDepth.LONG_IMG)
            self.assertEqual(compressed.naxes, (8, 8))

    def test_tables(self) -> None:
        with FitsHandle.open(self.path("multi_extension.fits")) as handle:
            for index in (3, 4):
                with self.subTest(index=index):
                    handle.seek(index)
                    error = assert_fits_error(
                        self, NotAnImageHDUError, handle.image_parameters, operation="image_parameters"
                    )
                    self.assertEqual(error.status, StatusCode.NOT_IMAGE)
                    self.assertEqual(handle.current_hdu, index)
            handle.seek(3)
            with self.assertRaises(NotAnImageHDUError):
                handle.read_pixels("float64")
            self.assertEqual(handle.current_hdu, 3)

    def test_too_many_axes(self) -> None:
        with FitsHandle.open(self.path("cube.fits")) as handle:
            error = assert_fits_error(
                self, UnsupportedDimensionalityError, handle.image_parameters, operation="image_parameters"
            )
            self.assertEqual(error.status, StatusCode.BAD_DIMEN)
            with self.assertRaises(UnsupportedDimensionalityError):
                handle.read_pixels("int32")

    def test_truncate_axes(self) -> None:
        options = FitsAccessOptions(axis_policy=AxisPolicy.TRUNCATE)
        with FitsHandle.open(self.path("cube.fits"), options=options) as handle:
            with self.assertLogs("lsst.fitsaccess", level="WARNING") as cm:
                parameters = handle.image_parameters()
        self.assertIn("4 axes", cm.output[0])
        self.assertEqual(parameters.naxis, 3)
        self.assertEqual(parameters.naxes, (5, 4, 3))
        self.assertTrue(parameters.truncated)

    def test_max_axes(self) -> None:
        options = FitsAccessOptions(max_axes=4)
        with FitsHandle.open(self.path("cube.fits"), options=options) as handle:
            parameters = handle.image_parameters()
        self.assertEqual(parameters.naxes, (5, 4, 3, 2))
        self.assertFalse(parameters.truncated)
        options = FitsAccessOptions(max_axes=1, axis_policy=AxisPolicy.TRUNCATE)
        with FitsHandle.open(self.path("blank.fits"), options=options) as handle:
            with self.assertLogs("lsst.fitsaccess", level="WARNING"):
                parameters = handle.image_parameters()
        self.assertEqual(parameters.naxes, (4,))


if __name__ == "__main__":
    unittest.main()
