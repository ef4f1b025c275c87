# SPDX-License-Identifier: MIT
"""Pipeline configuration for bullet-sys.

The fixed values of a pipeline version (pinned revision, repository,
library set, CMake feature toggles) live in a frozen PipelineConfig.
The pipeline receives it explicitly, so tests and downstream projects
can substitute their own values.

Example:
    config = PipelineConfig()
    config = load_config("bullet-sys.json")  # JSON overrides on top
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

REPOSITORY = "https://github.com/bulletphysics/bullet3.git"
REVISION = "2.86.1"

# Link order satisfies the linker's dependency resolution.
LIBRARIES: tuple[str, ...] = (
    "Bullet2FileLoader",
    "Bullet3Common",
    "Bullet3Geometry",
    "BulletCollision",
    "BulletInverseDynamics",
    "LinearMath",
    "Bullet3Collision",
    "Bullet3Dynamics",
    "Bullet3OpenCL_clew",
    "BulletDynamics",
    "BulletSoftBody",
)

# Only what the C API needs; the full build takes long enough already.
CMAKE_DEFINES: tuple[tuple[str, str], ...] = (
    ("USE_DOUBLE_PRECISION", "OFF"),
    ("BUILD_SHARED_LIBS", "ON"),
    ("USE_SOFT_BODY_MULTI_BODY_DYNAMICS_WORLD", "OFF"),
    ("BUILD_CPU_DEMOS", "OFF"),
    ("USE_GLUT", "OFF"),
    ("BUILD_EXTRAS", "ON"),  # the C API lives in the extras
    ("CMAKE_BUILD_TYPE", "Release"),
)

# Older macOS releases lack features the build relies on.
APPLE_MIN_VERSION = "16.7.0"

DEFAULT_HEADER = Path(__file__).resolve().parent.parent / "c_api.h"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration of one pipeline version.

    Attributes:
        revision: Pinned upstream tag or branch to build.
        repository: Git URL of the upstream repository.
        libraries: Ordered library names the consumer must link.
        cmake_defines: Fixed CMake cache definitions.
        build_type: CMake configuration used for the build step.
        apple_min_version: Suffix appended to apple targets.
        header: The hand-maintained C header to generate bindings from.
        include_subdir: Checkout-relative directory holding the C API headers.
        binding_file: File name of the generated bindings in the output tree.
        directive_prefix: Prefix of every line sent to the build coordinator.
        git: Git executable.
        cmake: CMake executable.
        verify_remote: Check the origin URL of an existing checkout before pulling.
    """

    revision: str = REVISION
    repository: str = REPOSITORY
    libraries: tuple[str, ...] = LIBRARIES
    cmake_defines: tuple[tuple[str, str], ...] = CMAKE_DEFINES
    build_type: str = "Release"
    apple_min_version: str = APPLE_MIN_VERSION
    header: Path = field(default=DEFAULT_HEADER)
    include_subdir: tuple[str, ...] = ("examples", "SharedMemory")
    binding_file: str = "bindings.py"
    directive_prefix: str = "build:"
    git: str = "git"
    cmake: str = "cmake"
    verify_remote: bool = True

    def checkout_dir(self, project_root: Path) -> Path:
        """Location of the source checkout for this revision."""
        return Path(project_root) / "target" / f"source-{self.revision}"

    def replace(self, **changes: Any) -> PipelineConfig:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible view, used by `bullet-sys info`."""
        data = dataclasses.asdict(self)
        data["header"] = str(self.header)
        data["libraries"] = list(self.libraries)
        data["cmake_defines"] = dict(self.cmake_defines)
        data["include_subdir"] = "/".join(self.include_subdir)
        return data


def config_from_dict(data: dict[str, Any], base: PipelineConfig | None = None) -> PipelineConfig:
    """Apply a dict of overrides to a configuration.

    Args:
        data: Overrides keyed by PipelineConfig field name.
        base: Configuration to start from (default: PipelineConfig()).

    Returns:
        The new configuration.

    Raises:
        ValueError: If an unknown key is present.
    """
    base = base or PipelineConfig()
    known = {f.name for f in dataclasses.fields(PipelineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    for key, value in data.items():
        if key == "libraries":
            value = tuple(value)
        elif key == "cmake_defines":
            value = tuple((str(k), str(v)) for k, v in dict(value).items())
        elif key == "include_subdir":
            value = tuple(Path(value).parts) if isinstance(value, str) else tuple(value)
        elif key == "header":
            value = Path(value)
        changes[key] = value
    return base.replace(**changes)


def load_config(path: Path | str, base: PipelineConfig | None = None) -> PipelineConfig:
    """Load configuration overrides from a JSON file.

    Args:
        path: Path to the JSON file.
        base: Configuration to apply the overrides to.

    Returns:
        The resulting configuration. A relative `header` is resolved
        against the directory of the JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is not a JSON object or has unknown keys.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")

    if "header" in data and not Path(data["header"]).is_absolute():
        data["header"] = str(path.parent / data["header"])
    return config_from_dict(data, base)
