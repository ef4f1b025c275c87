# SPDX-License-Identifier: MIT
"""Native build of the upstream sources with CMake.

CMake is treated as a black box: it is configured with a fixed set of
cache definitions and then asked to build and install into the output
directory. Its own dependency tracking decides what is rebuilt.

Layout produced under ``out_dir``:
    build/   CMake binary directory
    lib/     installed libraries (link search path)
    include/ installed headers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from bullet_sys.configure.config import PipelineConfig
from bullet_sys.core.errors import NativeBuildError
from bullet_sys.util.commands import CommandRunner, SubprocessRunner, run_checked

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildOutput:
    """Result of the native build.

    Attributes:
        out_dir: Install prefix of the build (the build output tree).
        lib_dir: Directory containing the built libraries.
        include_dir: Directory containing the C API headers.
    """

    out_dir: Path
    lib_dir: Path
    include_dir: Path


class CMakeBuild:
    """Configure, build and install a CMake project.

    Example:
        out = (
            CMakeBuild(source, out_dir)
            .define("BUILD_SHARED_LIBS", "ON")
            .target("x86_64-unknown-linux-gnu")
            .build(runner)
        )
    """

    def __init__(
        self,
        source: Path | str,
        out_dir: Path | str,
        *,
        cmake: str = "cmake",
        build_type: str = "Release",
    ) -> None:
        self.source = Path(source)
        self.out_dir = Path(out_dir)
        self.cmake = cmake
        self.build_type = build_type
        self._defines: dict[str, str] = {}
        self._target: str | None = None
        self._jobs: int | None = None

    @property
    def build_dir(self) -> Path:
        return self.out_dir / "build"

    def define(self, name: str, value: str) -> CMakeBuild:
        """Add a ``-D<name>=<value>`` cache definition."""
        self._defines[name] = value
        return self

    def target(self, target: str) -> CMakeBuild:
        """Set the compiler target triple."""
        self._target = target
        return self

    def jobs(self, jobs: int | None) -> CMakeBuild:
        """Set the number of parallel build jobs."""
        self._jobs = jobs
        return self

    def configure_command(self) -> list[str]:
        cmd = [self.cmake, str(self.source), f"-DCMAKE_INSTALL_PREFIX={self.out_dir}"]
        for name, value in self._defines.items():
            cmd.append(f"-D{name}={value}")
        if self._target:
            cmd.append(f"-DCMAKE_C_COMPILER_TARGET={self._target}")
            cmd.append(f"-DCMAKE_CXX_COMPILER_TARGET={self._target}")
        return cmd

    def build_command(self) -> list[str]:
        cmd = [
            self.cmake,
            "--build",
            ".",
            "--target",
            "install",
            "--config",
            self.build_type,
        ]
        if self._jobs:
            cmd.extend(["--parallel", str(self._jobs)])
        return cmd

    def build(self, runner: CommandRunner | None = None) -> Path:
        """Run the configure and build/install commands.

        Returns:
            The install prefix (``out_dir``).

        Raises:
            NativeBuildError: If either CMake invocation fails.
        """
        runner = runner or SubprocessRunner()
        self.build_dir.mkdir(parents=True, exist_ok=True)
        run_checked(runner, self.configure_command(), cwd=self.build_dir, error=NativeBuildError)
        run_checked(runner, self.build_command(), cwd=self.build_dir, error=NativeBuildError)
        return self.out_dir

    def __repr__(self) -> str:
        return f"CMakeBuild(source={self.source}, out_dir={self.out_dir})"


def build_native(
    checkout: Path,
    target: str,
    out_dir: Path,
    config: PipelineConfig,
    *,
    jobs: int | None = None,
    runner: CommandRunner | None = None,
) -> BuildOutput:
    """Build the checkout with the fixed feature configuration.

    Args:
        checkout: Source checkout to build.
        target: Resolved target identifier.
        out_dir: Output directory (install prefix).
        config: Pipeline configuration with the CMake definitions.
        jobs: Parallel job count.
        runner: Command runner (default: SubprocessRunner).

    Returns:
        The BuildOutput describing the library and include directories.
    """
    cmake = CMakeBuild(checkout, out_dir, cmake=config.cmake, build_type=config.build_type)
    for name, value in config.cmake_defines:
        cmake.define(name, value)
    cmake.target(target).jobs(jobs)

    out = cmake.build(runner)
    logger.info("out = %s", out)

    lib_dir = out / "lib"
    logger.info("lib_dir = %s", lib_dir)
    # The C API only exists in the examples, not in the installed headers.
    include_dir = Path(checkout).joinpath(*config.include_subdir)
    logger.info("include_dir = %s", include_dir)

    return BuildOutput(out_dir=out, lib_dir=lib_dir, include_dir=include_dir)
