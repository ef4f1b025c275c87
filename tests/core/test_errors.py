# SPDX-License-Identifier: MIT
"""Tests for bullet_sys.core.errors."""

from bullet_sys.core.errors import (
    AcquisitionError,
    ArtifactWriteError,
    BulletSysError,
    CommandError,
    GenerationError,
    NativeBuildError,
    RemoteMismatchError,
    ToolNotFoundError,
)


class TestBulletSysError:
    def test_message(self):
        error = BulletSysError("something broke")
        assert str(error) == "something broke"
        assert error.step is None

    def test_with_step(self):
        error = BulletSysError("something broke").with_step("build")
        assert error.step == "build"
        assert str(error) == "build: something broke"


class TestCommandError:
    def test_includes_command_and_status(self):
        error = CommandError(["git", "clone", "x"], 128)
        assert "git clone x" in str(error)
        assert "exit status 128" in str(error)

    def test_output_is_verbatim(self):
        output = "CMake Error at CMakeLists.txt:1:\n  something is wrong"
        error = NativeBuildError(["cmake", "."], 1, output)
        assert str(error).endswith(output)
        assert error.output == output

    def test_subclasses(self):
        assert issubclass(AcquisitionError, CommandError)
        assert issubclass(NativeBuildError, CommandError)
        assert issubclass(CommandError, BulletSysError)


def test_generation_error_lists_diagnostics():
    error = GenerationError("unable to parse c_api.h", ["c_api.h:3:1: unknown type name 'foo'"])
    assert error.diagnostics == ["c_api.h:3:1: unknown type name 'foo'"]
    assert "unknown type name" in str(error)


def test_artifact_write_error():
    error = ArtifactWriteError("/out/bindings.py", "Permission denied")
    assert error.path == "/out/bindings.py"
    assert "couldn't write /out/bindings.py" in str(error)


def test_remote_mismatch_error():
    error = RemoteMismatchError("https://a/repo.git", "https://b/repo.git")
    assert error.expected == "https://a/repo.git"
    assert error.actual == "https://b/repo.git"


def test_tool_not_found_error():
    assert str(ToolNotFoundError("cmake")) == "tool not found: cmake"
