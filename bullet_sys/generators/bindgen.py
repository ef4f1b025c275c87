# SPDX-License-Identifier: MIT
"""Binding generation from a C header using libclang.

The header is parsed with clang.cindex and every declaration reachable
from it is turned into ctypes code: functions, structs, unions, enums,
typedefs and numeric macros. Declarations from system headers are left
out; types from them are mapped to the matching ctypes primitive.

Example:
    bindings = (
        BindingGenerator()
        .header("c_api.h")
        .clang_arg(f"-L{lib_dir}")
        .clang_arg(f"-I{include_dir}")
        .generate()
    )
    bindings.write_to_file(out_dir / "bindings.py")

Set LIBCLANG_PATH to a directory or file to pick a specific libclang.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from clang.cindex import (
    Config,
    Cursor,
    CursorKind,
    Diagnostic,
    Index,
    LibclangError,
    Token,
    TranslationUnit,
    TranslationUnitLoadError,
    Type,
    TypeKind,
)

from bullet_sys.configure.environment import get_var
from bullet_sys.core.errors import ArtifactWriteError, GenerationError
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

logger = logging.getLogger(__name__)

PRIMITIVES: dict[TypeKind, str] = {
    TypeKind.VOID: "None",
    TypeKind.BOOL: "ctypes.c_bool",
    TypeKind.CHAR_S: "ctypes.c_char",
    TypeKind.CHAR_U: "ctypes.c_char",
    TypeKind.SCHAR: "ctypes.c_byte",
    TypeKind.UCHAR: "ctypes.c_ubyte",
    TypeKind.WCHAR: "ctypes.c_wchar",
    TypeKind.CHAR16: "ctypes.c_uint16",
    TypeKind.CHAR32: "ctypes.c_uint32",
    TypeKind.SHORT: "ctypes.c_short",
    TypeKind.USHORT: "ctypes.c_ushort",
    TypeKind.INT: "ctypes.c_int",
    TypeKind.UINT: "ctypes.c_uint",
    TypeKind.LONG: "ctypes.c_long",
    TypeKind.ULONG: "ctypes.c_ulong",
    TypeKind.LONGLONG: "ctypes.c_longlong",
    TypeKind.ULONGLONG: "ctypes.c_ulonglong",
    TypeKind.FLOAT: "ctypes.c_float",
    TypeKind.DOUBLE: "ctypes.c_double",
    TypeKind.LONGDOUBLE: "ctypes.c_longdouble",
}

# Typedefs from system headers that have a direct ctypes counterpart
WELL_KNOWN_TYPEDEFS: dict[str, str] = {
    "size_t": "ctypes.c_size_t",
    "ssize_t": "ctypes.c_ssize_t",
    "wchar_t": "ctypes.c_wchar",
    "int8_t": "ctypes.c_int8",
    "int16_t": "ctypes.c_int16",
    "int32_t": "ctypes.c_int32",
    "int64_t": "ctypes.c_int64",
    "uint8_t": "ctypes.c_uint8",
    "uint16_t": "ctypes.c_uint16",
    "uint32_t": "ctypes.c_uint32",
    "uint64_t": "ctypes.c_uint64",
}

RECORD_KINDS = (CursorKind.STRUCT_DECL, CursorKind.UNION_DECL)
ARRAY_KINDS = (
    TypeKind.CONSTANTARRAY,
    TypeKind.INCOMPLETEARRAY,
    TypeKind.VARIABLEARRAY,
    TypeKind.DEPENDENTSIZEDARRAY,
)
FUNCTION_KINDS = (TypeKind.FUNCTIONPROTO, TypeKind.FUNCTIONNOPROTO)

_INT_LITERAL = re.compile(r"^(0[xX][0-9a-fA-F]+|0[bB][01]+|[0-9]+)[uUlL]*$")
_FLOAT_LITERAL = re.compile(
    r"^((?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[0-9]+[eE][+-]?[0-9]+)[fFlL]?$"
)


def configure_libclang() -> None:
    """Point clang.cindex at LIBCLANG_PATH, if set and not loaded yet."""
    path = get_var("LIBCLANG_PATH")
    if not path or Config.loaded:
        return
    if Path(path).is_file():
        Config.set_library_file(path)
    else:
        Config.set_library_path(path)


def parse_number(text: str) -> int | float | None:
    """Parse a C integer or floating literal, or return None."""
    match = _INT_LITERAL.match(text)
    if match:
        digits = match.group(1)
        try:
            if digits[:2].lower() in ("0x", "0b"):
                return int(digits, 0)
            if len(digits) > 1 and digits.startswith("0"):
                return int(digits, 8)
            return int(digits)
        except ValueError:
            return None
    match = _FLOAT_LITERAL.match(text)
    if match:
        return float(match.group(1))
    return None


def macro_value(tokens: list[str]) -> int | float | None:
    """Value of a macro body made of a single, optionally signed, literal."""
    while len(tokens) >= 2 and tokens[0] == "(" and tokens[-1] == ")":
        tokens = tokens[1:-1]
    sign = 1
    if len(tokens) == 2 and tokens[0] in ("-", "+"):
        sign = -1 if tokens[0] == "-" else 1
        tokens = tokens[1:]
    if len(tokens) != 1:
        return None
    value = parse_number(tokens[0])
    if value is None:
        return None
    return sign * value


def _is_wanted(cursor: Cursor) -> bool:
    location = cursor.location
    return location.file is not None and not location.is_in_system_header


def _decl_key(cursor: Cursor) -> str:
    usr = cursor.get_usr()
    if usr:
        return usr
    location = cursor.location
    return f"{location.file}:{location.line}:{location.column}"


def _is_unnamed(cursor: Cursor) -> bool:
    spelling = cursor.spelling
    return (
        not spelling
        or cursor.is_anonymous()
        or "(unnamed" in spelling
        or "(anonymous" in spelling
    )


def _is_function_like(tokens: list[Token]) -> bool:
    """True if the macro tokens start with a parameter list.

    The "(" of a function-like macro follows its name without whitespace.
    """
    name, paren = tokens[0], tokens[1]
    return paren.spelling == "(" and paren.extent.start.offset == name.extent.end.offset


def _format_diagnostic(diag: Diagnostic) -> str:
    location = diag.location
    if location.file is not None:
        return f"{location.file}:{location.line}:{location.column}: {diag.spelling}"
    return diag.spelling


class HeaderParser:
    """Collects ctypes declarations from a parsed translation unit."""

    PARSE_OPTIONS = (
        TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD
        | TranslationUnit.PARSE_SKIP_FUNCTION_BODIES
    )

    def __init__(self, clang_args: Iterable[str] = ()) -> None:
        self.clang_args = list(clang_args)
        self._parsed: ParsedHeader | None = None
        self._record_names: dict[str, str] = {}
        self._records: dict[str, Record] = {}
        self._defined: set[str] = set()
        self._enums: set[str] = set()
        self._names: set[str] = set()
        self._functions: set[str] = set()
        self._anon_count = 0

    def parse(self, header: Path) -> ParsedHeader:
        """Parse ``header`` and return everything it declares.

        Raises:
            GenerationError: If libclang is unavailable or reports errors.
        """
        configure_libclang()
        try:
            index = Index.create()
            tu = index.parse(str(header), args=self.clang_args, options=self.PARSE_OPTIONS)
        except LibclangError as e:
            raise GenerationError(f"libclang could not be loaded: {e}") from e
        except TranslationUnitLoadError as e:
            raise GenerationError(f"unable to parse {header}: {e}") from e

        errors = [
            _format_diagnostic(diag)
            for diag in tu.diagnostics
            if diag.severity >= Diagnostic.Error
        ]
        if errors:
            raise GenerationError(f"unable to parse {header}", errors)

        self._parsed = ParsedHeader(header=Path(header))
        cursors = [cursor for cursor in tu.cursor.get_children() if _is_wanted(cursor)]
        self._name_typedef_records(cursors)
        for cursor in cursors:
            self._visit(cursor)

        parsed = self._parsed
        logger.info(
            "Found %d functions, %d records, %d declarations in %s",
            len(parsed.functions),
            len(parsed.records),
            len(parsed.declarations),
            header,
        )
        return parsed

    def _name_typedef_records(self, cursors: list[Cursor]) -> None:
        # typedef struct { ... } Name;  -> class Name
        for cursor in cursors:
            if cursor.kind != CursorKind.TYPEDEF_DECL:
                continue
            underlying = cursor.underlying_typedef_type
            if underlying.kind == TypeKind.ELABORATED:
                underlying = underlying.get_named_type()
            if underlying.kind != TypeKind.RECORD:
                continue
            decl = underlying.get_declaration()
            if _is_unnamed(decl):
                self._record_names.setdefault(_decl_key(decl), python_name(cursor.spelling))

    def _visit(self, cursor: Cursor) -> None:
        kind = cursor.kind
        if kind in RECORD_KINDS:
            self._record(cursor)
        elif kind == CursorKind.ENUM_DECL:
            self._enum(cursor)
        elif kind == CursorKind.TYPEDEF_DECL:
            self._typedef(cursor)
        elif kind == CursorKind.FUNCTION_DECL:
            self._function(cursor)
        elif kind == CursorKind.MACRO_DEFINITION:
            self._macro(cursor)

    # -- Records --------------------------------------------------------------

    def _ensure_record(self, decl: Cursor) -> Record:
        key = _decl_key(decl)
        record = self._records.get(key)
        if record is not None:
            return record

        name = self._record_names.get(key)
        if name is None:
            if _is_unnamed(decl):
                self._anon_count += 1
                name = f"_anon_{self._anon_count}"
            else:
                name = python_name(decl.spelling)
        kind = "union" if decl.kind == CursorKind.UNION_DECL else "struct"
        record = Record(name=name, kind=kind)
        self._records[key] = record
        self._names.add(name)
        self._parsed.records.append(record)
        return record

    def _record(self, cursor: Cursor) -> None:
        record = self._ensure_record(cursor)
        key = _decl_key(cursor)
        if not cursor.is_definition() or key in self._defined:
            return
        self._defined.add(key)
        self._fill_record(cursor, record)
        self._parsed.declarations.append(record)

    def _fill_record(self, cursor: Cursor, record: Record) -> None:
        record.opaque = False
        children = list(cursor.get_children())

        referenced = set()
        for child in children:
            if child.kind == CursorKind.FIELD_DECL:
                decl = self._field_record(child.type)
                if decl is not None:
                    referenced.add(_decl_key(decl))

        for child in children:
            if child.kind in RECORD_KINDS:
                self._record(child)
                if _is_unnamed(child) and _decl_key(child) not in referenced:
                    # Anonymous member: its fields are promoted to the parent.
                    name = f"_anon{len(record.anonymous)}"
                    record.anonymous.append(name)
                    record.fields.append((name, self._ensure_record(child).name))
            elif child.kind == CursorKind.ENUM_DECL:
                self._enum(child)
            elif child.kind == CursorKind.FIELD_DECL:
                ctype = self._ctype(child.type)
                if child.is_bitfield():
                    record.fields.append((child.spelling, ctype, child.get_bitfield_width()))
                else:
                    record.fields.append((child.spelling, ctype))

    def _field_record(self, ctype: Type) -> Cursor | None:
        while ctype.kind in (TypeKind.ELABORATED, TypeKind.CONSTANTARRAY, TypeKind.INCOMPLETEARRAY):
            if ctype.kind == TypeKind.ELABORATED:
                ctype = ctype.get_named_type()
            else:
                ctype = ctype.element_type
        if ctype.kind == TypeKind.RECORD:
            return ctype.get_declaration()
        return None

    # -- Other declarations ---------------------------------------------------

    def _enum(self, cursor: Cursor) -> None:
        key = _decl_key(cursor)
        if key in self._enums or not cursor.is_definition():
            return
        self._enums.add(key)

        name = None if _is_unnamed(cursor) else python_name(cursor.spelling)
        if name is not None:
            self._names.add(name)
        constants = [
            (python_name(child.spelling), child.enum_value)
            for child in cursor.get_children()
            if child.kind == CursorKind.ENUM_CONSTANT_DECL
        ]
        self._parsed.declarations.append(
            Enum(name=name, ctype=self._ctype(cursor.enum_type), constants=constants)
        )

    def _typedef(self, cursor: Cursor) -> None:
        name = python_name(cursor.spelling)
        if name in self._names:
            return
        target = self._ctype(cursor.underlying_typedef_type)
        if target == name:
            return
        self._names.add(name)
        self._parsed.declarations.append(TypeAlias(name=name, target=target))

    def _function(self, cursor: Cursor) -> None:
        name = cursor.spelling
        if name in self._functions:
            return
        self._functions.add(name)

        ftype = cursor.type
        self._parsed.functions.append(
            Function(
                name=name,
                restype=self._ctype(cursor.result_type),
                argtypes=[self._param_ctype(arg.type) for arg in cursor.get_arguments()],
                variadic=ftype.kind == TypeKind.FUNCTIONPROTO and ftype.is_function_variadic(),
            )
        )

    def _macro(self, cursor: Cursor) -> None:
        tokens = list(cursor.get_tokens())
        if len(tokens) < 2 or _is_function_like(tokens):
            return
        value = macro_value([token.spelling for token in tokens[1:]])
        if value is None:
            return
        name = python_name(tokens[0].spelling)
        if name in self._names:
            return
        self._names.add(name)
        self._parsed.declarations.append(Constant(name=name, value=value))

    # -- Types ----------------------------------------------------------------

    def _ctype(self, ctype: Type) -> str:
        kind = ctype.kind
        if kind == TypeKind.ELABORATED:
            return self._ctype(ctype.get_named_type())
        if kind == TypeKind.TYPEDEF:
            decl = ctype.get_declaration()
            if _is_wanted(decl):
                return python_name(decl.spelling)
            if decl.spelling in WELL_KNOWN_TYPEDEFS:
                return WELL_KNOWN_TYPEDEFS[decl.spelling]
            return self._ctype(ctype.get_canonical())
        if kind in PRIMITIVES:
            return PRIMITIVES[kind]
        if kind == TypeKind.POINTER:
            return self._pointer_ctype(ctype.get_pointee())
        if kind == TypeKind.CONSTANTARRAY:
            return f"({self._ctype(ctype.element_type)} * {ctype.element_count})"
        if kind in ARRAY_KINDS:
            # flexible array member
            return f"({self._ctype(ctype.element_type)} * 0)"
        if kind == TypeKind.RECORD:
            return self._ensure_record(ctype.get_declaration()).name
        if kind == TypeKind.ENUM:
            return self._ctype(ctype.get_declaration().enum_type)
        if kind in FUNCTION_KINDS:
            return self._functype(ctype)
        canonical = ctype.get_canonical()
        if canonical.kind != kind:
            return self._ctype(canonical)
        # Anything ctypes cannot describe travels as an opaque pointer.
        return "ctypes.c_void_p"

    def _pointer_ctype(self, pointee: Type) -> str:
        canonical = pointee.get_canonical()
        if canonical.kind == TypeKind.VOID:
            return "ctypes.c_void_p"
        if canonical.kind in (TypeKind.CHAR_S, TypeKind.CHAR_U):
            return "ctypes.c_char_p"
        if canonical.kind == TypeKind.WCHAR:
            return "ctypes.c_wchar_p"
        if canonical.kind in FUNCTION_KINDS:
            return self._functype(canonical)
        return f"ctypes.POINTER({self._ctype(pointee)})"

    def _param_ctype(self, ctype: Type) -> str:
        if ctype.kind in ARRAY_KINDS:
            return self._pointer_ctype(ctype.element_type)
        return self._ctype(ctype)

    def _functype(self, ctype: Type) -> str:
        parts = [self._ctype(ctype.get_result())]
        if ctype.kind == TypeKind.FUNCTIONPROTO:
            parts.extend(self._param_ctype(arg) for arg in ctype.argument_types())
        return f"ctypes.CFUNCTYPE({', '.join(parts)})"


@dataclass
class Bindings:
    """Generated bindings, ready to be written out.

    Attributes:
        parsed: The declarations the bindings were generated from.
        source: Source text of the generated ctypes module.
    """

    parsed: ParsedHeader
    source: str

    def symbols(self) -> set[str]:
        return self.parsed.symbols()

    def write_to_file(self, path: Path | str) -> Path:
        """Write the bindings, replacing any previous file.

        Raises:
            ArtifactWriteError: If the file cannot be written.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                f.write(self.source)
        except OSError as e:
            raise ArtifactWriteError(str(path), e.strerror or str(e)) from e
        logger.info("Wrote bindings to %s", path)
        return path


class BindingGenerator:
    """Builder for ctypes bindings of a single header.

    Every symbol reachable from the header is generated; there is no
    allow or deny list.
    """

    def __init__(self) -> None:
        self._header: Path | None = None
        self._clang_args: list[str] = []

    def header(self, path: Path | str) -> BindingGenerator:
        """Set the input header."""
        self._header = Path(path)
        return self

    def clang_arg(self, arg: str) -> BindingGenerator:
        """Add an argument passed to clang when parsing."""
        self._clang_args.append(arg)
        return self

    @property
    def clang_args(self) -> list[str]:
        return list(self._clang_args)

    def generate(self) -> Bindings:
        """Parse the header and render the bindings module.

        Raises:
            GenerationError: If no header is set, it is missing, or parsing fails.
        """
        if self._header is None:
            raise GenerationError("no input header given")
        if not self._header.is_file():
            raise GenerationError(f"header not found: {self._header}")

        parsed = HeaderParser(self._clang_args).parse(self._header)
        return Bindings(parsed=parsed, source=render_module(parsed))


def generate_bindings(
    header: Path,
    lib_dir: Path,
    include_dir: Path,
    output: Path,
) -> Bindings:
    """Generate bindings for ``header`` and write them to ``output``."""
    bindings = (
        BindingGenerator()
        .header(header)
        .clang_arg(f"-L{lib_dir}")
        .clang_arg(f"-I{include_dir}")
        .generate()
    )
    bindings.write_to_file(output)
    return bindings
