# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the exception hierarchy of the microlens package.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Any, Optional


class MicrolensError(Exception):
    """Base class for every error raised by the microlens package."""


class InvalidProfile(MicrolensError, ValueError):
    """A resolution profile or padding value cannot produce a cluster."""


class InvalidTransform(MicrolensError, ValueError):
    """An affine placement would collapse a hexagon (zero scale or singular matrix)."""


class DegenerateRing(MicrolensError):
    """The outer ring cannot be stitched into a closed sample-space polygon.

    This signals a layout bug upstream and is never expected in normal operation.
    """


class ConfigError(MicrolensError, ValueError):
    """A configuration file is missing, unreadable or malformed."""


class NoConvergence(MicrolensError):
    """The padding search exhausted its iteration budget.

    Attributes:
        best: Best solution found before giving up (a ``PaddingSolution``), if any.
    """

    def __init__(self, message: str, best: Optional[Any] = None):
        super().__init__(message)
        self.best = best
