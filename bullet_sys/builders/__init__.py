# SPDX-License-Identifier: MIT
"""Native builds."""
