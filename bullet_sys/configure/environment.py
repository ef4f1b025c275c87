# SPDX-License-Identifier: MIT
"""Ambient build inputs for bullet-sys.

The pipeline reads a handful of values from its surroundings: the
project root, the target platform, the output directory and the job
count. They are gathered once into a BuildEnvironment before the first
step runs.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from bullet_sys.configure.platform import host_triple

# Internal storage for CLI variables
_cli_vars: dict[str, str] | None = None


def set_cli_vars(variables: Mapping[str, str] | None) -> None:
    """Install variables given on the command line (KEY=value)."""
    global _cli_vars
    _cli_vars = dict(variables) if variables is not None else None


def get_var(name: str, default: str | None = None) -> str | None:
    """Get a build variable set on the command line or from environment.

    Variables can be set when invoking bullet-sys:
        bullet-sys TARGET=x86_64-apple-darwin NUM_JOBS=8

    Precedence (highest to lowest):
        1. Command line: bullet-sys VAR=value
        2. BULLET_SYS_VARS (JSON object, set by wrappers)
        3. Environment variable: VAR=value bullet-sys

    Args:
        name: Variable name.
        default: Default value if not set.

    Returns:
        The variable value, or default if not set.
    """
    if _cli_vars is not None and name in _cli_vars:
        return _cli_vars[name]

    wrapped = os.environ.get("BULLET_SYS_VARS")
    if wrapped:
        try:
            values = json.loads(wrapped)
        except json.JSONDecodeError:
            values = {}
        if isinstance(values, dict) and name in values:
            return str(values[name])

    return os.environ.get(name, default)


@dataclass(frozen=True)
class BuildEnvironment:
    """Inputs taken from the environment of one pipeline run.

    Attributes:
        project_root: Root of the consuming project; the checkout lives below it.
        target: Raw target platform string, before resolution.
        out_dir: Output directory handed to the native build.
        jobs: Parallel build jobs, or None to let CMake decide.
    """

    project_root: Path
    target: str
    out_dir: Path
    jobs: int | None = None

    @classmethod
    def from_vars(cls, project_root: Path | str | None = None) -> BuildEnvironment:
        """Collect the environment from CLI variables and os.environ.

        Reads BULLET_SYS_ROOT, TARGET, OUT_DIR and NUM_JOBS. Missing values
        fall back to the current directory, the host triple and
        ``<root>/target/out``.

        Raises:
            ValueError: If NUM_JOBS is not a positive integer.
        """
        if project_root is None:
            project_root = get_var("BULLET_SYS_ROOT") or Path.cwd()
        root = Path(project_root).absolute()

        target = get_var("TARGET") or host_triple()
        out_dir = Path(get_var("OUT_DIR") or root / "target" / "out").absolute()

        jobs_value = get_var("NUM_JOBS")
        jobs: int | None = None
        if jobs_value:
            try:
                jobs = int(jobs_value)
            except ValueError:
                raise ValueError(f"NUM_JOBS must be an integer, got {jobs_value!r}") from None
            if jobs < 1:
                raise ValueError(f"NUM_JOBS must be positive, got {jobs}")

        return cls(project_root=root, target=target, out_dir=out_dir, jobs=jobs)
