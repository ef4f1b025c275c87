# SPDX-License-Identifier: MIT
"""Helpers for running external commands."""
