# SPDX-License-Identifier: MIT
"""The bullet-sys build pipeline.

Five steps run strictly in order, each consuming what the previous one
produced:

    fetch     -> SourceCheckout
    target    -> resolved target identifier
    build     -> BuildOutput
    link      -> link directives on stdout
    bindings  -> generated bindings file

A step reports failure by raising a BulletSysError. The pipeline tags
the error with the step name and stops; later steps never run.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO, TypeVar

from bullet_sys.builders.cmake import BuildOutput, build_native
from bullet_sys.configure.config import PipelineConfig
from bullet_sys.configure.environment import BuildEnvironment
from bullet_sys.configure.platform import resolve_target
from bullet_sys.core.errors import BulletSysError
from bullet_sys.fetch.git import SourceCheckout, fetch_source
from bullet_sys.generators.bindgen import generate_bindings
from bullet_sys.generators.directives import Directive, emit_link_directives
from bullet_sys.util.commands import CommandRunner, SubprocessRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PipelineState:
    """Values handed from one step to the next.

    Attributes:
        config: The pipeline configuration.
        env: Inputs read from the environment.
        script: Top-level build script announced as a rerun trigger.
        checkout: Result of the fetch step.
        target: Resolved target identifier.
        build: Result of the native build step.
        directives: Link directives that were emitted.
        bindings: Path of the generated bindings file.
        completed: Names of the steps that finished.
    """

    config: PipelineConfig
    env: BuildEnvironment
    script: Path
    checkout: SourceCheckout | None = None
    target: str | None = None
    build: BuildOutput | None = None
    directives: list[Directive] = field(default_factory=list)
    bindings: Path | None = None
    completed: list[str] = field(default_factory=list)


Step = Callable[[PipelineState], None]


def default_script() -> Path:
    """The running top-level script, announced when no script is given."""
    if sys.argv and sys.argv[0] not in ("", "-c"):
        return Path(sys.argv[0]).resolve()
    return Path(__file__).resolve()


def _require(value: T | None, what: str, step: str) -> T:
    if value is None:
        raise BulletSysError(f"{what} is missing; the {step} step has not run")
    return value


class Pipeline:
    """Runs named steps in sequence and stops at the first failure.

    Example:
        pipeline = Pipeline(config, env, runner=runner)
        state = pipeline.run()
    """

    def __init__(
        self,
        config: PipelineConfig,
        env: BuildEnvironment,
        *,
        runner: CommandRunner | None = None,
        stream: TextIO | None = None,
        script: Path | None = None,
    ) -> None:
        self.config = config
        self.env = env
        self.runner = runner or SubprocessRunner()
        self.stream = stream
        self.script = Path(script) if script is not None else default_script()
        self.steps: list[tuple[str, Step]] = [
            ("fetch", self.fetch),
            ("target", self.resolve),
            ("build", self.build),
            ("link", self.link),
            ("bindings", self.bindings),
        ]

    def run(self, until: str | None = None) -> PipelineState:
        """Run the steps, optionally stopping after the step named ``until``.

        Raises:
            BulletSysError: From the first failing step, tagged with its name.
            ValueError: If ``until`` is not a step name.
        """
        names = [name for name, _ in self.steps]
        if until is not None and until not in names:
            raise ValueError(f"Unknown step {until!r}, expected one of {names}")

        state = PipelineState(config=self.config, env=self.env, script=self.script)
        for name, step in self.steps:
            logger.debug("Starting step %s", name)
            try:
                step(state)
            except BulletSysError as e:
                e.with_step(name)
                logger.debug("Step %s failed", name)
                raise
            state.completed.append(name)
            if name == until:
                break
        return state

    # -- Steps ----------------------------------------------------------------

    def fetch(self, state: PipelineState) -> None:
        checkout = self.config.checkout_dir(self.env.project_root)
        state.checkout = fetch_source(checkout, self.config, self.runner)

    def resolve(self, state: PipelineState) -> None:
        state.target = resolve_target(self.env.target, self.config.apple_min_version)
        logger.info("target = %s", state.target)

    def build(self, state: PipelineState) -> None:
        checkout = _require(state.checkout, "source checkout", "fetch")
        target = _require(state.target, "target", "target")
        state.build = build_native(
            checkout.path,
            target,
            self.env.out_dir,
            self.config,
            jobs=self.env.jobs,
            runner=self.runner,
        )

    def link(self, state: PipelineState) -> None:
        build = _require(state.build, "build output", "build")
        target = _require(state.target, "target", "target")
        state.directives = emit_link_directives(
            build.lib_dir,
            self.config.libraries,
            target,
            state.script,
            prefix=self.config.directive_prefix,
            stream=self.stream,
        )

    def bindings(self, state: PipelineState) -> None:
        build = _require(state.build, "build output", "build")
        output = build.out_dir / self.config.binding_file
        generate_bindings(
            self.config.header,
            build.lib_dir,
            build.include_dir,
            output,
        )
        state.bindings = output


def run_pipeline(
    config: PipelineConfig | None = None,
    env: BuildEnvironment | None = None,
    *,
    runner: CommandRunner | None = None,
    stream: TextIO | None = None,
    script: Path | str | None = None,
) -> PipelineState:
    """Run the whole pipeline.

    Args:
        config: Pipeline configuration (default: PipelineConfig()).
        env: Build environment (default: read from CLI vars / os.environ).
        runner: Command runner for git and cmake.
        stream: Where link directives are written (default: stdout).
        script: Top-level build script to announce as a rerun trigger
            (default: the running script, sys.argv[0]).

    Returns:
        The final PipelineState.

    Raises:
        BulletSysError: If any step fails.
    """
    pipeline = Pipeline(
        config or PipelineConfig(),
        env or BuildEnvironment.from_vars(),
        runner=runner,
        stream=stream,
        script=Path(script) if script is not None else None,
    )
    return pipeline.run()
