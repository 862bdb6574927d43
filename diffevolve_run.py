# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the entry point script for DiffEvolve.
#
# ===--------------------------------------------------------------------------------------===#

import sys
from diffevolve.cli import main

if __name__ == "__main__":
    sys.exit(main())
