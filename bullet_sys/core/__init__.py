# SPDX-License-Identifier: MIT
"""Pipeline core: errors and the step runner."""
