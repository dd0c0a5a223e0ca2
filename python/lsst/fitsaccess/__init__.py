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

"""Low-level, read-side access to FITS files.

A `FitsHandle` owns an open file and an explicit cursor that selects the
current HDU.  Header keywords, image geometry, and pixel data are always read
from the HDU under the cursor, which only moves when `FitsHandle.seek` is
called::

    with FitsHandle.open("image.fits") as handle:
        handle.seek(2)
        parameters = handle.image_parameters()
        buffer = handle.read_pixels(NumberType.float64)

Pixel values are decoded by `astropy.io.fits`, which is wrapped so that every
failure is reported with CFITSIO status codes and then translated into one of
the `FitsAccessError` subclasses.
"""

from ._buffer import *
from ._dtypes import *
from ._errors import *
from ._handle import *
from ._models import *
from ._options import *
from ._status import *
from ._window import *
