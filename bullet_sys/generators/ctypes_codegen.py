# SPDX-License-Identifier: MIT
"""ctypes module writer for parsed C declarations.

The writer turns a ParsedHeader into the source of a standalone Python
module. Layout of the generated module:

1. ``import ctypes``
2. An empty class for every struct/union, so pointers can refer to any
   record regardless of declaration order.
3. Enums, type aliases, record ``_fields_`` and macro constants, in the
   order the header declares them.
4. A ``FUNCTIONS`` prototype table, plus ``bind(lib)`` and ``load(path)``
   helpers that apply it to a loaded library.
"""

from __future__ import annotations

import keyword
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Record:
    """A struct or union.

    Attributes:
        name: Python class name.
        kind: "struct" or "union".
        fields: (name, ctype) or (name, ctype, bit width) tuples.
        anonymous: Names of fields whose members are promoted to the parent.
        opaque: True if the header never defines the record.
    """

    name: str
    kind: str = "struct"
    fields: list[tuple] = field(default_factory=list)
    anonymous: list[str] = field(default_factory=list)
    opaque: bool = True


@dataclass
class Enum:
    """An enum and its constants; ``name`` is None for anonymous enums."""

    name: str | None
    ctype: str
    constants: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class TypeAlias:
    """A typedef."""

    name: str
    target: str


@dataclass
class Constant:
    """A numeric object-like macro."""

    name: str
    value: int | float


@dataclass
class Function:
    """A function prototype."""

    name: str
    restype: str
    argtypes: list[str] = field(default_factory=list)
    variadic: bool = False


@dataclass
class ParsedHeader:
    """Declarations found in a header and everything it includes.

    Attributes:
        header: The parsed header file.
        records: Records in order of first appearance.
        declarations: Enums, aliases, record definitions and constants, in
            header order. A Record appears here once it is defined.
        functions: Function prototypes in header order.
    """

    header: Path
    records: list[Record] = field(default_factory=list)
    declarations: list[Enum | TypeAlias | Record | Constant] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)

    def symbols(self) -> set[str]:
        """Names of every bound type, constant and function."""
        names: set[str] = {record.name for record in self.records}
        for decl in self.declarations:
            if isinstance(decl, Enum):
                if decl.name:
                    names.add(decl.name)
                names.update(name for name, _ in decl.constants)
            elif isinstance(decl, (TypeAlias, Constant)):
                names.add(decl.name)
        names.update(func.name for func in self.functions)
        return names


def python_name(name: str) -> str:
    """Make a C identifier usable as a Python module-level name."""
    if keyword.iskeyword(name):
        return name + "_"
    return name


def render_module(parsed: ParsedHeader) -> str:
    """Render the source of the bindings module."""
    lines: list[str] = [
        f'"""ctypes bindings generated from {parsed.header.name}.',
        "",
        "Regenerated on every build; do not edit.",
        '"""',
        "",
        "import ctypes",
        "",
    ]

    for record in parsed.records:
        base = "ctypes.Union" if record.kind == "union" else "ctypes.Structure"
        lines.extend(["", f"class {record.name}({base}):", "    pass", ""])

    if parsed.declarations:
        lines.append("")
    for decl in parsed.declarations:
        lines.extend(_render_declaration(decl))

    lines.extend(_render_functions(parsed.functions))
    return "\n".join(lines).rstrip() + "\n"


def _render_declaration(decl: Enum | TypeAlias | Record | Constant) -> list[str]:
    if isinstance(decl, Enum):
        out = []
        if decl.name:
            out.append(f"{decl.name} = {decl.ctype}")
        out.extend(f"{name} = {value}" for name, value in decl.constants)
        return out
    if isinstance(decl, TypeAlias):
        return [f"{decl.name} = {decl.target}"]
    if isinstance(decl, Constant):
        return [f"{decl.name} = {decl.value!r}"]

    out = []
    if decl.anonymous:
        out.append(f"{decl.name}._anonymous_ = {decl.anonymous!r}")
    if not decl.fields:
        out.append(f"{decl.name}._fields_ = []")
        return out
    out.append(f"{decl.name}._fields_ = [")
    for entry in decl.fields:
        if len(entry) == 3:
            name, ctype, width = entry
            out.append(f"    ({name!r}, {ctype}, {width}),")
        else:
            name, ctype = entry
            out.append(f"    ({name!r}, {ctype}),")
    out.append("]")
    return out


def _render_functions(functions: list[Function]) -> list[str]:
    # Variadic functions accept extra arguments after the listed argtypes.
    lines = ["", "", "# name: (restype, argtypes)", "FUNCTIONS = {"]
    for func in functions:
        args = ", ".join(func.argtypes)
        suffix = "  # variadic" if func.variadic else ""
        lines.append(f"    {func.name!r}: ({func.restype}, [{args}]),{suffix}")
    lines.append("}")
    lines.extend(
        [
            "",
            "",
            "def bind(lib):",
            '    """Set restype/argtypes on every function the library exports."""',
            "    for name, (restype, argtypes) in FUNCTIONS.items():",
            "        func = getattr(lib, name, None)",
            "        if func is None:",
            "            continue",
            "        func.restype = restype",
            "        func.argtypes = argtypes",
            "    return lib",
            "",
            "",
            "def load(path):",
            '    """Load the shared library at ``path`` and bind it."""',
            "    return bind(ctypes.CDLL(str(path)))",
        ]
    )
    return lines
