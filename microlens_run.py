# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the entry point script for the microlens calibration.
#
# ===--------------------------------------------------------------------------------------===#

import sys
from microlens.cli import main

if __name__ == "__main__":
    sys.exit(main())
