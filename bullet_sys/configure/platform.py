# SPDX-License-Identifier: MIT
"""Target resolution for bullet-sys.

The target identifier is a compiler-style triple such as
``x86_64-unknown-linux-gnu`` or ``x86_64-apple-darwin``. It is read from
the environment once per run, adjusted for apple targets and then passed
unchanged to the native build and the link directives.
"""

from __future__ import annotations

import platform
import sys

from bullet_sys.configure.config import APPLE_MIN_VERSION

_ARCH_ALIASES: dict[str, str] = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "i386": "i686",
    "i586": "i686",
    "x86": "i686",
}


def resolve_target(raw_target: str, apple_min_version: str = APPLE_MIN_VERSION) -> str:
    """Derive the effective target identifier from the raw target string.

    Apple targets get a minimum OS version appended so the compiler may
    use newer platform features. Everything else passes through.

    >>> resolve_target("x86_64-apple-darwin")
    'x86_64-apple-darwin16.7.0'
    >>> resolve_target("x86_64-unknown-linux-gnu")
    'x86_64-unknown-linux-gnu'
    """
    if "apple" in raw_target:
        return f"{raw_target}{apple_min_version}"
    return raw_target


def target_family(target: str) -> str | None:
    """Classify a target by the C++ runtime it links against.

    Returns:
        "gnu" for GNU targets, "apple" for apple targets, None otherwise.
    """
    if "gnu" in target:
        return "gnu"
    if "apple" in target:
        return "apple"
    return None


def host_triple() -> str:
    """Best-effort target triple of the running interpreter's host."""
    machine = platform.machine().lower() or "unknown"
    arch = _ARCH_ALIASES.get(machine, machine)

    if sys.platform == "darwin":
        return f"{arch}-apple-darwin"
    if sys.platform == "win32":
        return f"{arch}-pc-windows-msvc"
    if sys.platform.startswith("linux"):
        libc, _ = platform.libc_ver()
        abi = "gnu" if libc in ("glibc", "") else "musl"
        return f"{arch}-unknown-linux-{abi}"
    if sys.platform.startswith("freebsd"):
        return f"{arch}-unknown-freebsd"
    return f"{arch}-unknown-{sys.platform}"
