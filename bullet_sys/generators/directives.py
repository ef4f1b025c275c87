# SPDX-License-Identifier: MIT
"""Link directives for the enclosing build coordinator.

Directives are single lines on stdout of the form ``<prefix><key>=<value>``:

    build:link-search=native=/path/to/out/lib
    build:link-lib=BulletDynamics
    build:link-lib=c++
    build:rerun-if-changed=/path/to/build.py

Anything else the pipeline prints goes to stderr through logging, so a
coordinator can read stdout line by line and ignore what it doesn't know.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from bullet_sys.configure.platform import target_family
from bullet_sys.core.errors import DirectiveError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "build:"

# C++ runtime library per target family
CXX_RUNTIME: dict[str, str] = {
    "gnu": "stdc++",
    "apple": "c++",
}


@dataclass(frozen=True)
class Directive:
    """One instruction for the build coordinator."""

    key: str
    value: str

    def render(self, prefix: str = DEFAULT_PREFIX) -> str:
        return f"{prefix}{self.key}={self.value}"


def link_directives(
    lib_dir: Path,
    libraries: Sequence[str],
    target: str,
    script: Path,
) -> list[Directive]:
    """Compute the directives needed to link against the built libraries.

    Args:
        lib_dir: Directory holding the built libraries.
        libraries: Library names, in link order.
        target: Resolved target identifier.
        script: Top-level build script; changes to it trigger a rerun.

    Returns:
        The directives in emission order.
    """
    directives = [Directive("link-search", f"native={lib_dir}")]
    directives.extend(Directive("link-lib", name) for name in libraries)

    family = target_family(target)
    if family is not None:
        directives.append(Directive("link-lib", CXX_RUNTIME[family]))

    directives.append(Directive("rerun-if-changed", str(script)))
    return directives


def emit_link_directives(
    lib_dir: Path,
    libraries: Sequence[str],
    target: str,
    script: Path,
    *,
    prefix: str = DEFAULT_PREFIX,
    stream: TextIO | None = None,
) -> list[Directive]:
    """Write the link directives to ``stream`` (default: stdout).

    Raises:
        DirectiveError: If the stream cannot be written.
    """
    stream = stream if stream is not None else sys.stdout
    directives = link_directives(lib_dir, libraries, target, script)
    try:
        for directive in directives:
            stream.write(directive.render(prefix) + "\n")
        stream.flush()
    except (OSError, ValueError) as e:
        raise DirectiveError(f"cannot write link directives: {e}") from e
    logger.info("Emitted %d link directives", len(directives))
    return directives


def parse_directives(lines: Iterable[str], prefix: str = DEFAULT_PREFIX) -> list[Directive]:
    """Read directives back from coordinator output.

    Lines without the prefix, or without a ``key=value`` body, are ignored.
    """
    directives: list[Directive] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if not line.startswith(prefix):
            continue
        key, sep, value = line[len(prefix) :].partition("=")
        if key and sep:
            directives.append(Directive(key, value))
    return directives
