# SPDX-License-Identifier: MIT
"""Custom exceptions for bullet-sys.

All bullet-sys exceptions inherit from BulletSysError, which carries
the name of the pipeline step that failed once the pipeline has seen it.
Every one of them is fatal: the pipeline never retries or continues.
"""

from __future__ import annotations

from collections.abc import Sequence


class BulletSysError(Exception):
    """Base class for all bullet-sys exceptions.

    Attributes:
        message: The error message.
        step: Name of the pipeline step that raised the error, if known.
    """

    def __init__(self, message: str, step: str | None = None) -> None:
        self.message = message
        self.step = step
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.step:
            return f"{self.step}: {self.message}"
        return self.message

    def with_step(self, step: str) -> BulletSysError:
        """Record the failing step and refresh the exception message."""
        self.step = step
        self.args = (self._format_message(),)
        return self


class CommandError(BulletSysError):
    """An external command exited with a non-zero status.

    The captured output of the command is kept verbatim so the caller
    can see the real diagnostic of git, cmake and friends.

    Attributes:
        argv: The command line that was executed.
        returncode: Exit status of the command.
        output: Combined stdout/stderr of the command.
    """

    def __init__(
        self,
        argv: Sequence[str],
        returncode: int,
        output: str = "",
        step: str | None = None,
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.output = output
        message = f"failed to execute {' '.join(self.argv)} (exit status {returncode})"
        if output.strip():
            message = f"{message}\n{output.rstrip()}"
        super().__init__(message, step)


class AcquisitionError(CommandError):
    """Fetching or updating the source checkout failed."""


class NativeBuildError(CommandError):
    """The native CMake build failed."""


class RemoteMismatchError(BulletSysError):
    """An existing checkout points at a different repository.

    Attributes:
        expected: The configured repository URL.
        actual: The origin URL found in the checkout.
    """

    def __init__(self, expected: str, actual: str, step: str | None = None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"checkout origin is {actual!r}, expected {expected!r}", step
        )


class GenerationError(BulletSysError):
    """The binding generator could not parse the header or emit bindings.

    Attributes:
        diagnostics: Diagnostics reported by the C parser.
    """

    def __init__(
        self,
        message: str,
        diagnostics: Sequence[str] = (),
        step: str | None = None,
    ) -> None:
        self.diagnostics = list(diagnostics)
        if self.diagnostics:
            message = message + "\n" + "\n".join(self.diagnostics)
        super().__init__(message, step)


class ArtifactWriteError(BulletSysError):
    """A generated artifact could not be written.

    Attributes:
        path: The path that could not be written.
    """

    def __init__(self, path: str, reason: str, step: str | None = None) -> None:
        self.path = path
        super().__init__(f"couldn't write {path}: {reason}", step)


class DirectiveError(BulletSysError):
    """Link directives could not be delivered to the build coordinator."""


class ToolNotFoundError(BulletSysError):
    """Required tool was not found.

    Attributes:
        tool: The name of the tool that was not found.
    """

    def __init__(self, tool: str, step: str | None = None) -> None:
        self.tool = tool
        super().__init__(f"tool not found: {tool}", step)
