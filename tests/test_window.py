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

import unittest

from lsst.fitsaccess import PixelWindow


class PixelWindowTestCase(unittest.TestCase):
    """Tests for the PixelWindow class."""

    def test_validation(self) -> None:
        with self.assertRaises(ValueError):
            PixelWindow((1, 1), (4,))
        with self.assertRaises(ValueError):
            PixelWindow((0, 1), (4, 4))
        with self.assertRaises(ValueError):
            PixelWindow((1, 1), (4, 0))

    def test_properties(self) -> None:
        window = PixelWindow((2, 3), (3, 2))
        self.assertEqual(window.first_pixel, (2, 3))
        self.assertEqual(window.counts, (3, 2))
        self.assertEqual(window.last_pixel, (4, 4))
        self.assertEqual(window.naxis, 2)
        self.assertEqual(window.size, 6)
        self.assertEqual(window.padded(3), PixelWindow((2, 3, 1), (3, 2, 1)))
        self.assertEqual(window.padded(2), window)
        with self.assertRaises(ValueError):
            window.padded(1)
        self.assertEqual(PixelWindow.full((4, 5)), PixelWindow((1, 1), (4, 5)))
        self.assertNotEqual(window, PixelWindow((2, 3), (3, 1)))
        self.assertEqual(len({window, PixelWindow((2, 3), (3, 2))}), 1)

    def test_bounds(self) -> None:
        naxes = (4, 4)
        self.assertTrue(PixelWindow((2, 3), (3, 2)).is_within(naxes))
        self.assertTrue(PixelWindow.full(naxes).is_within(naxes))
        self.assertFalse(PixelWindow((3, 1), (3, 1)).is_within(naxes))
        self.assertFalse(PixelWindow((1, 4), (4, 2)).is_within(naxes))
        self.assertFalse(PixelWindow((1, 1), (5, 1)).is_within(naxes))
        with self.assertRaises(ValueError):
            PixelWindow((1, 1), (1, 1)).is_within((4, 4, 4))

    def test_linear_offset(self) -> None:
        self.assertEqual(PixelWindow((1, 1), (1, 1)).linear_offset((4, 4)), 0)
        self.assertEqual(PixelWindow((2, 3), (1, 1)).linear_offset((4, 4)), 9)
        self.assertEqual(PixelWindow((1, 2, 2), (1, 1, 1)).linear_offset((5, 4, 3)), 25)
        with self.assertRaises(ValueError):
            PixelWindow((1, 1), (1, 1)).linear_offset((4, 4, 4))

    def test_contiguity(self) -> None:
        naxes = (4, 4)
        self.assertTrue(PixelWindow.full(naxes).is_contiguous_within(naxes))
        self.assertTrue(PixelWindow((1, 2), (4, 2)).is_contiguous_within(naxes))
        self.assertTrue(PixelWindow((2, 3), (3, 1)).is_contiguous_within(naxes))
        self.assertFalse(PixelWindow((2, 3), (3, 2)).is_contiguous_within(naxes))
        self.assertFalse(PixelWindow((1, 1), (3, 2)).is_contiguous_within(naxes))
        with self.assertRaises(ValueError):
            PixelWindow.full(naxes).is_contiguous_within((4, 4, 1))

    def test_runs(self) -> None:
        naxes = (4, 4)
        window = PixelWindow((1, 2), (4, 2))
        self.assertEqual(list(window.runs(naxes)), [window])
        self.assertEqual(
            list(PixelWindow((2, 3), (3, 2)).runs(naxes)),
            [PixelWindow((2, 3), (3, 1)), PixelWindow((2, 4), (3, 1))],
        )
        cube = (4, 3, 2)
        runs = list(PixelWindow((1, 2, 1), (4, 2, 2)).runs(cube))
        self.assertEqual(
            runs,
            [PixelWindow((1, 2, 1), (4, 2, 1)), PixelWindow((1, 2, 2), (4, 2, 1))],
        )
        runs = list(PixelWindow((2, 2, 1), (2, 2, 2)).runs(cube))
        self.assertEqual(
            [run.first_pixel for run in runs],
            [(2, 2, 1), (2, 3, 1), (2, 2, 2), (2, 3, 2)],
        )
        for run in runs:
            self.assertTrue(run.is_contiguous_within(cube))
            self.assertEqual(run.counts, (2, 1, 1))


if __name__ == "__main__":
    unittest.main()
