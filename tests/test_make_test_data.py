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

from click.testing import CliRunner

from lsst.fitsaccess import FitsHandle
from lsst.fitsaccess.tests import SAMPLES
from lsst.fitsaccess.tests.make_test_data import main


class MakeTestDataTestCase(unittest.TestCase):
    """Tests for the make_test_data command."""

    def test_list(self) -> None:
        result = CliRunner().invoke(main, ["--list"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.split(), list(SAMPLES))

    def test_write(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            target = os.path.join(directory, "samples")
            result = CliRunner().invoke(main, ["-d", target])
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertEqual(sorted(os.listdir(target)), sorted(SAMPLES))
            for filename in SAMPLES:
                with FitsHandle.open(os.path.join(target, filename)) as handle:
                    self.assertGreaterEqual(handle.hdu_count(), 1)

    def test_environment(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            result = CliRunner().invoke(main, [], env={"TESTDATA_FITSACCESS_DIR": directory})
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("blank.fits", os.listdir(directory))

    def test_no_directory(self) -> None:
        result = CliRunner().invoke(main, [], env={"TESTDATA_FITSACCESS_DIR": None})
        self.assertEqual(result.exit_code, 2)
        self.assertIn("TESTDATA_FITSACCESS_DIR", result.output)


if __name__ == "__main__":
    unittest.main()
