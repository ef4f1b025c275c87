# SPDX-License-Identifier: MIT
"""Shared fixtures for bullet-sys tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import pytest

from bullet_sys.configure.config import REPOSITORY
from bullet_sys.configure.environment import set_cli_vars
from bullet_sys.util.commands import CommandResult

PHYSICS_CLIENT_HEADER = """\
#ifndef PHYSICS_CLIENT_C_API_H
#define PHYSICS_CLIENT_C_API_H

#define B3_DECLARE_HANDLE(name) typedef struct name##__ { int unused; } *name

B3_DECLARE_HANDLE(b3PhysicsClientHandle);
B3_DECLARE_HANDLE(b3SharedMemoryCommandHandle);

#define SHARED_MEMORY_KEY 12347
#define MAX_DEGREE_OF_FREEDOM (64)

enum EnumSharedMemoryServerStatus
{
    CMD_CLIENT_COMMAND_COMPLETED = 1,
    CMD_CAMERA_IMAGE_COMPLETED
};

struct b3JointInfo
{
    char* m_linkName;
    int m_jointType;
    double m_jointDamping;
    double m_jointAxis[3];
};

#ifdef __cplusplus
extern "C" {
#endif

b3PhysicsClientHandle b3ConnectSharedMemory(int key);
void b3DisconnectSharedMemory(b3PhysicsClientHandle physClient);
int b3CanSubmitCommand(b3PhysicsClientHandle physClient);
int b3GetJointInfo(b3PhysicsClientHandle physClient, int bodyIndex, int jointIndex,
                   struct b3JointInfo* info);

#ifdef __cplusplus
}
#endif

#endif
"""

PHYSICS_DIRECT_HEADER = """\
#ifndef PHYSICS_DIRECT_C_API_H
#define PHYSICS_DIRECT_C_API_H

#include "PhysicsClientC_API.h"

b3PhysicsClientHandle b3ConnectPhysicsDirect(void);

#endif
"""

IN_PROCESS_HEADER = """\
#ifndef IN_PROCESS_PHYSICS_C_API_H
#define IN_PROCESS_PHYSICS_C_API_H

#include "PhysicsClientC_API.h"

b3PhysicsClientHandle b3CreateInProcessPhysicsServerAndConnect(int argc, char* argv[]);

#endif
"""


def write_fake_bullet_sources(checkout: Path) -> Path:
    """Populate ``checkout`` like a Bullet clone with a tiny C API."""
    (checkout / ".git").mkdir(parents=True, exist_ok=True)
    include_dir = checkout / "examples" / "SharedMemory"
    include_dir.mkdir(parents=True, exist_ok=True)
    (include_dir / "PhysicsClientC_API.h").write_text(PHYSICS_CLIENT_HEADER)
    (include_dir / "PhysicsDirectC_API.h").write_text(PHYSICS_DIRECT_HEADER)
    (include_dir / "SharedMemoryInProcessPhysicsC_API.h").write_text(IN_PROCESS_HEADER)
    return include_dir


@dataclass
class Call:
    """A command recorded by FakeRunner."""

    argv: list[str]
    cwd: Path | None


class FakeRunner:
    """CommandRunner that records commands instead of running them.

    ``git clone`` creates a fake Bullet checkout at the destination and
    ``git remote get-url origin`` answers with ``origin``. Commands that
    contain all tokens of a registered failure exit with status 1.
    """

    def __init__(self, origin: str = REPOSITORY) -> None:
        self.origin = origin
        self.calls: list[Call] = []
        self._failures: list[tuple[tuple[str, ...], str]] = []

    def fail(self, *tokens: str, output: str = "fatal: simulated failure") -> FakeRunner:
        self._failures.append((tokens, output))
        return self

    def commands(self, program: str) -> list[list[str]]:
        return [call.argv for call in self.calls if call.argv[0] == program]

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        argv = list(argv)
        self.calls.append(Call(argv, cwd))
        for tokens, output in self._failures:
            if all(token in argv for token in tokens):
                return CommandResult(tuple(argv), 1, "", output)

        if argv[1:2] == ["clone"]:
            write_fake_bullet_sources(Path(argv[-1]))
        if argv[1:4] == ["remote", "get-url", "origin"]:
            return CommandResult(tuple(argv), 0, self.origin + "\n", "")
        return CommandResult(tuple(argv), 0, "", "")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def fake_sources() -> Callable[[Path], Path]:
    return write_fake_bullet_sources


@pytest.fixture(autouse=True)
def _reset_cli_vars():
    set_cli_vars(None)
    yield
    set_cli_vars(None)


def _libclang_available() -> bool:
    try:
        from clang.cindex import Index

        Index.create()
    except Exception:
        return False
    return True


@pytest.fixture
def libclang() -> None:
    """Skip the test when libclang cannot be loaded."""
    if not _libclang_available():
        pytest.skip("libclang not available")
