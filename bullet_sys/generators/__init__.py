# SPDX-License-Identifier: MIT
"""Outputs of the pipeline: link directives and bindings."""

from bullet_sys.generators.bindgen import BindingGenerator, Bindings
from bullet_sys.generators.directives import (
    Directive,
    emit_link_directives,
    parse_directives,
)

__all__ = [
    "BindingGenerator",
    "Bindings",
    "Directive",
    "emit_link_directives",
    "parse_directives",
]
