# SPDX-License-Identifier: MIT
"""Source acquisition."""
