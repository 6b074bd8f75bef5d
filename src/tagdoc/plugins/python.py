"""Python API plugin: classes, enums and functions read from module ASTs"""

import ast
import asyncio
import re
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field

from tagdoc.core.compiler import Compiler
from tagdoc.core.errors import MetadataError, PluginError
from tagdoc.core.models import Block, is_tag
from tagdoc.core.utils.files import File, read_source


ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}


class Kind(str, Enum):
    klass = "class"
    enum = "enum"
    enum_member = "enum member"
    function = "function"
    method = "method"
    property = "property"


class PyParameter(BaseModel):
    name: str
    type: Optional[str] = None
    default_value: Optional[str] = None


class PyFlags(BaseModel):
    is_async:      bool = False
    is_static:     bool = False
    is_class:      bool = False
    is_private:    bool = False
    is_deprecated: bool = False


class PyFunction(BaseModel):
    kind:          Literal[Kind.function, Kind.method] = Kind.function
    name:          str
    documentation: Optional[Block] = None
    parameters:    list[PyParameter] = Field(default_factory=list)
    return_type:   Optional[str] = None
    flags:         PyFlags = Field(default_factory=PyFlags)
    source_path:   str


class PyProperty(BaseModel):
    kind:          Literal[Kind.property] = Kind.property
    name:          str
    documentation: Optional[Block] = None
    type:          Optional[str] = None
    default_value: Optional[str] = None
    source_path:   str


class PyClass(BaseModel):
    kind:          Literal[Kind.klass] = Kind.klass
    name:          str
    documentation: Optional[Block] = None
    bases:         list[str] = Field(default_factory=list)
    methods:       list[PyFunction] = Field(default_factory=list)
    properties:    list[PyProperty] = Field(default_factory=list)
    source_path:   str


class PyEnumMember(BaseModel):
    kind:          Literal[Kind.enum_member] = Kind.enum_member
    name:          str
    default_value: Optional[str] = None


class PyEnum(BaseModel):
    kind:          Literal[Kind.enum] = Kind.enum
    name:          str
    documentation: Optional[Block] = None
    members:       list[PyEnumMember] = Field(default_factory=list)
    source_path:   str


PyDocEntry = Annotated[Union[PyClass, PyEnum, PyFunction], Field(discriminator="kind")]


def _unparse(node: Optional[ast.AST]) -> Optional[str]:
    return None if node is None else ast.unparse(node)


def _decorators(node: ast.FunctionDef | ast.AsyncFunctionDef) -> set[str]:
    return {ast.unparse(d) for d in node.decorator_list}


def _is_deprecated(decorators: set[str], documentation: Optional[Block]) -> bool:
    """A `@deprecated` decorator (warnings or typing_extensions) or an `@deprecated` docstring tag."""
    if any(d.split("(", 1)[0].rsplit(".", 1)[-1] == "deprecated" for d in decorators):
        return True
    return documentation is not None and any(is_tag(n, "deprecated") for n in documentation.contents)


def _parameters(args: ast.arguments, skip_first: bool) -> list[PyParameter]:
    """Flatten positional, *args, keyword-only and **kwargs into one ordered list."""
    positional = [*args.posonlyargs, *args.args]
    # defaults align with the tail of the positional list
    defaults = [None] * (len(positional) - len(args.defaults)) + list(args.defaults)
    params = [
        PyParameter(name=a.arg, type=_unparse(a.annotation), default_value=_unparse(d))
        for a, d in zip(positional, defaults)
    ]
    if skip_first and params:
        params = params[1:]
    if args.vararg:
        params.append(PyParameter(name=f"*{args.vararg.arg}", type=_unparse(args.vararg.annotation)))
    params.extend(
        PyParameter(name=a.arg, type=_unparse(a.annotation), default_value=_unparse(d))
        for a, d in zip(args.kwonlyargs, args.kw_defaults)
    )
    if args.kwarg:
        params.append(PyParameter(name=f"**{args.kwarg.arg}", type=_unparse(args.kwarg.annotation)))
    return params


class PythonPlugin:
    """Emits {"python": {name: PyClass | PyEnum | PyFunction}} for module-level definitions.

    Docstrings are compiled with `render_block`, so front matter and @tags
    work inside them. Names starting with an underscore are skipped unless
    `include_private` is set; `__init__` is always kept.
    """

    def __init__(
        self,
        exclude_names: Sequence[Union[str, re.Pattern]] = (),
        exclude_paths: Sequence[Union[str, re.Pattern]] = (),
        include_private: bool = False,
        ):
        self.exclude_names = tuple(exclude_names)
        self.exclude_paths = tuple(exclude_paths)
        self.include_private = include_private

    async def compile(self, files: Sequence[File], compiler: Compiler) -> dict[str, Any]:
        modules = await asyncio.gather(*(
            self.visit_module(f, compiler)
            for f in files
            if not any(re.search(p, f.path) for p in self.exclude_paths)
        ))
        entries = [e for entries in modules for e in entries]
        return {"python": compiler.objectify(entries, lambda e: e.name)}

    def _visible(self, name: str) -> bool:
        if any(re.search(p, name) for p in self.exclude_names):
            return False
        return self.include_private or name == "__init__" or not name.startswith("_")

    async def visit_module(self, file: File, compiler: Compiler) -> list[PyClass | PyEnum | PyFunction]:
        source_path = compiler.relative_path(file.path)
        try:
            tree = ast.parse(read_source(file), filename=file.path)
            entries = []
            for node in tree.body:
                if isinstance(node, ast.ClassDef) and self._visible(node.name):
                    entries.append(await self._visit_class(node, source_path, compiler))
                elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and self._visible(node.name):
                    entries.append(await self._visit_function(node, source_path, compiler, Kind.function))
            return entries
        except (SyntaxError, MetadataError) as e:
            raise PluginError(file.path, e) from e

    async def _documentation(self, node: ast.AST, compiler: Compiler) -> Optional[Block]:
        doc = ast.get_docstring(node)
        return None if doc is None else await compiler.render_block(doc)

    async def _visit_function(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        source_path: str,
        compiler: Compiler,
        kind: Kind,
        ) -> PyFunction:
        decorators = _decorators(node)
        documentation = await self._documentation(node, compiler)
        flags = PyFlags(
            is_async=isinstance(node, ast.AsyncFunctionDef),
            is_static="staticmethod" in decorators,
            is_class="classmethod" in decorators,
            is_private=node.name.startswith("_") and node.name != "__init__",
            is_deprecated=_is_deprecated(decorators, documentation),
        )
        return PyFunction(
            kind=kind,
            name=node.name,
            documentation=documentation,
            parameters=_parameters(node.args, skip_first=kind == Kind.method and not flags.is_static),
            return_type=_unparse(node.returns),
            flags=flags,
            source_path=source_path,
        )

    async def _visit_class(self, node: ast.ClassDef, source_path: str, compiler: Compiler) -> PyClass | PyEnum:
        bases = [ast.unparse(b) for b in node.bases]
        documentation = await self._documentation(node, compiler)
        if any(b.rsplit(".", 1)[-1] in ENUM_BASES for b in bases):
            members = [
                PyEnumMember(name=target.id, default_value=_unparse(stmt.value))
                for stmt in node.body if isinstance(stmt, ast.Assign)
                for target in stmt.targets
                if isinstance(target, ast.Name) and not target.id.startswith("_")
            ]
            return PyEnum(name=node.name, documentation=documentation, members=members, source_path=source_path)

        klass = PyClass(name=node.name, documentation=documentation, bases=bases, source_path=source_path)
        for stmt in node.body:
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name) and self._visible(stmt.target.id):
                klass.properties.append(PyProperty(
                    name=stmt.target.id,
                    type=_unparse(stmt.annotation),
                    default_value=_unparse(stmt.value),
                    source_path=source_path,
                ))
            elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)) and self._visible(stmt.name):
                decorators = _decorators(stmt)
                if any(d.endswith((".setter", ".deleter")) for d in decorators):
                    continue
                if "property" in decorators:
                    klass.properties.append(PyProperty(
                        name=stmt.name,
                        documentation=await self._documentation(stmt, compiler),
                        type=_unparse(stmt.returns),
                        source_path=source_path,
                    ))
                else:
                    klass.methods.append(await self._visit_function(stmt, source_path, compiler, Kind.method))
        return klass
