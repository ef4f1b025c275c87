# SPDX-License-Identifier: MIT
"""Tests for bullet_sys.generators.ctypes_codegen."""

from __future__ import annotations

import ctypes
from pathlib import Path
from types import SimpleNamespace

from bullet_sys.generators.ctypes_codegen import (
    Constant,
    Enum,
    Function,
    ParsedHeader,
    Record,
    TypeAlias,
    python_name,
    render_module,
)


def _sample_header() -> ParsedHeader:
    node = Record("b3Node")
    info = Record(
        "b3JointInfo",
        fields=[
            ("m_jointIndex", "ctypes.c_int"),
            ("m_flags", "ctypes.c_uint", 3),
            ("m_next", "ctypes.POINTER(b3Node)"),
            ("m_axis", "ctypes.c_double * 3"),
        ],
        opaque=False,
    )
    value = Record(
        "b3Value",
        kind="union",
        fields=[("i", "ctypes.c_int"), ("d", "ctypes.c_double")],
        opaque=False,
    )
    return ParsedHeader(
        header=Path("c_api.h"),
        records=[node, info, value],
        declarations=[
            Enum("EnumStatus", "ctypes.c_uint", [("CMD_OK", 1), ("CMD_FAILED", 2)]),
            TypeAlias("b3Handle", "ctypes.POINTER(b3Node)"),
            info,
            value,
            Constant("SHARED_MEMORY_KEY", 12347),
            Constant("B3_EPSILON", 1e-6),
        ],
        functions=[
            Function("b3Connect", "b3Handle", ["ctypes.c_int"]),
            Function("b3Log", "None", ["ctypes.c_char_p"], variadic=True),
        ],
    )


def _exec(source: str) -> dict:
    namespace: dict = {}
    exec(compile(source, "bindings.py", "exec"), namespace)
    return namespace


class TestRenderModule:
    def test_module_executes(self):
        ns = _exec(render_module(_sample_header()))

        assert ns["CMD_OK"] == 1
        assert ns["CMD_FAILED"] == 2
        assert ns["EnumStatus"] is ctypes.c_uint
        assert ns["SHARED_MEMORY_KEY"] == 12347
        assert ns["B3_EPSILON"] == 1e-6
        assert issubclass(ns["b3Value"], ctypes.Union)
        assert issubclass(ns["b3JointInfo"], ctypes.Structure)

    def test_struct_layout(self):
        ns = _exec(render_module(_sample_header()))
        info = ns["b3JointInfo"]()

        info.m_jointIndex = 5
        info.m_flags = 7
        info.m_axis[2] = 1.5
        assert (info.m_jointIndex, info.m_flags, info.m_axis[2]) == (5, 7, 1.5)
        assert [name for name, *_ in info._fields_] == [
            "m_jointIndex",
            "m_flags",
            "m_next",
            "m_axis",
        ]

    def test_opaque_record_has_no_fields(self):
        source = render_module(_sample_header())
        assert "b3Node._fields_" not in source
        assert "class b3Node(ctypes.Structure):" in source

    def test_function_table(self):
        source = render_module(_sample_header())
        ns = _exec(source)

        assert ns["FUNCTIONS"]["b3Connect"] == (ns["b3Handle"], [ctypes.c_int])
        assert ns["FUNCTIONS"]["b3Log"] == (None, [ctypes.c_char_p])
        assert "# variadic" in source

    def test_bind_sets_prototypes(self):
        ns = _exec(render_module(_sample_header()))
        connect = SimpleNamespace()
        lib = SimpleNamespace(b3Connect=connect)

        assert ns["bind"](lib) is lib
        assert connect.restype is ns["b3Handle"]
        assert connect.argtypes == [ctypes.c_int]

    def test_anonymous_members(self):
        inner = Record("_anon_0", kind="union", fields=[("a", "ctypes.c_int")], opaque=False)
        outer = Record(
            "b3Outer",
            fields=[("_anon0", "_anon_0"), ("b", "ctypes.c_int")],
            anonymous=["_anon0"],
            opaque=False,
        )
        parsed = ParsedHeader(Path("x.h"), records=[inner, outer], declarations=[inner, outer])

        ns = _exec(render_module(parsed))
        value = ns["b3Outer"]()
        value.a = 3
        assert value.a == 3

    def test_empty_header(self):
        ns = _exec(render_module(ParsedHeader(Path("empty.h"))))
        assert ns["FUNCTIONS"] == {}


class TestSymbols:
    def test_collects_all_names(self):
        assert _sample_header().symbols() == {
            "b3Node",
            "b3JointInfo",
            "b3Value",
            "EnumStatus",
            "CMD_OK",
            "CMD_FAILED",
            "b3Handle",
            "SHARED_MEMORY_KEY",
            "B3_EPSILON",
            "b3Connect",
            "b3Log",
        }


def test_python_name():
    assert python_name("b3Connect") == "b3Connect"
    assert python_name("lambda") == "lambda_"
    assert python_name("None") == "None_"
