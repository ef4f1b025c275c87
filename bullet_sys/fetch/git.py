# SPDX-License-Identifier: MIT
"""Source acquisition from git.

The checkout directory is keyed by revision
(``<root>/target/source-<revision>``), so bumping the pinned revision
always starts from a fresh clone. An existing checkout is updated in
place with ``git pull origin <revision>``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from bullet_sys.configure.config import PipelineConfig
from bullet_sys.core.errors import AcquisitionError, RemoteMismatchError
from bullet_sys.util.commands import CommandRunner, SubprocessRunner, run_checked

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceCheckout:
    """A working copy of the upstream repository.

    Attributes:
        path: Checkout directory.
        revision: The revision it was cloned at or pulled toward.
        cloned: True if this run created the checkout.
    """

    path: Path
    revision: str
    cloned: bool


def is_checkout(path: Path) -> bool:
    """True if ``path`` holds git metadata."""
    return (path / ".git").exists()


def fetch_source(
    checkout: Path,
    config: PipelineConfig,
    runner: CommandRunner | None = None,
) -> SourceCheckout:
    """Make sure ``checkout`` holds the pinned revision of the repository.

    Clones with ``--branch=<revision>`` if there is no checkout yet,
    otherwise pulls the revision from origin inside the checkout.

    Args:
        checkout: Target directory for the working copy.
        config: Pipeline configuration (revision, repository, git executable).
        runner: Command runner (default: SubprocessRunner).

    Returns:
        The resulting SourceCheckout.

    Raises:
        AcquisitionError: If a git command exits non-zero.
        RemoteMismatchError: If the existing checkout tracks another repository.
        ToolNotFoundError: If git is not installed.
    """
    runner = runner or SubprocessRunner()
    checkout = Path(checkout)
    logger.info("source = %s", checkout)

    if not is_checkout(checkout):
        checkout.parent.mkdir(parents=True, exist_ok=True)
        run_checked(
            runner,
            [
                config.git,
                "clone",
                f"--branch={config.revision}",
                config.repository,
                str(checkout),
            ],
            error=AcquisitionError,
        )
        return SourceCheckout(path=checkout, revision=config.revision, cloned=True)

    if config.verify_remote:
        _verify_origin(checkout, config, runner)

    run_checked(
        runner,
        [config.git, "pull", "origin", config.revision],
        cwd=checkout,
        error=AcquisitionError,
    )
    return SourceCheckout(path=checkout, revision=config.revision, cloned=False)


def _verify_origin(checkout: Path, config: PipelineConfig, runner: CommandRunner) -> None:
    result = run_checked(
        runner,
        [config.git, "remote", "get-url", "origin"],
        cwd=checkout,
        error=AcquisitionError,
    )
    origin = result.stdout.strip()
    if _normalize_url(origin) != _normalize_url(config.repository):
        raise RemoteMismatchError(config.repository, origin)


def _normalize_url(url: str) -> str:
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url
