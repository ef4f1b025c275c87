# SPDX-License-Identifier: MIT
"""
bullet-sys: build Bullet from source and generate ctypes bindings.

The pipeline fetches a pinned Bullet revision, builds it with CMake using
a minimal feature set, announces link directives on stdout and generates
a ctypes module from the shared-memory C API.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
# These imports must be after __version__ is defined but we use noqa to allow it
from bullet_sys.configure.config import PipelineConfig, load_config  # noqa: E402
from bullet_sys.configure.environment import BuildEnvironment, get_var  # noqa: E402
from bullet_sys.configure.platform import resolve_target  # noqa: E402
from bullet_sys.core.errors import BulletSysError  # noqa: E402
from bullet_sys.core.pipeline import Pipeline, run_pipeline  # noqa: E402

# Public API exports
__all__ = [
    # Version
    "__version__",
    # Variable access
    "get_var",
    # Configuration
    "BuildEnvironment",
    "PipelineConfig",
    "load_config",
    "resolve_target",
    # Pipeline
    "BulletSysError",
    "Pipeline",
    "run_pipeline",
]
