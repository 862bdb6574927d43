# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements the exceptions raised by DiffEvolve.
#
# ===--------------------------------------------------------------------------------------===#


class ConfigurationError(ValueError):
    """Raised when an optimizer configuration is malformed.

    Configuration errors are always raised before the first objective
    evaluation, so a call that raises one has no side effects on the caller's
    shared state.
    """
