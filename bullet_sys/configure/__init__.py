# SPDX-License-Identifier: MIT
"""Configuration, environment and target resolution."""
