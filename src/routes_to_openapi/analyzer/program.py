"""Program analyser.

Loads every module below the program's source roots with ``ast``, builds a
symbol table per module and answers name lookups across modules. Nothing from
the analysed program is ever imported or executed.
"""

import ast
import importlib.util
import logging
import sys
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path

from routes_to_openapi.analyzer.base import DeclarationSite, Diagnostic, SourceLocation
from routes_to_openapi.analyzer.locate import ProgramLayout, locate_program
from routes_to_openapi.analyzer.types import ResolvedType
from routes_to_openapi.errors import TypeResolutionError

logger = logging.getLogger(__name__)

SKIP_DIRS = {"__pycache__", "venv", "env", "node_modules", "build", "dist", "site-packages"}

BUILTIN_NAMES = {
    "str", "int", "float", "bool", "bytes", "bytearray", "complex", "list", "dict",
    "set", "frozenset", "tuple", "object", "type", "range", "memoryview",
}

# Modules that are always considered resolvable, installed or not.
ALWAYS_AVAILABLE = {"builtins", "typing", "typing_extensions", "pydantic", "routes_to_openapi"}

TYPEVAR_FACTORIES = {"TypeVar", "ParamSpec", "TypeVarTuple"}


# -- symbols ------------------------------------------------------------------


@dataclass(frozen=True)
class ClassSymbol:
    module: str
    qualname: str
    node: ast.ClassDef


@dataclass(frozen=True)
class AliasSymbol:
    module: str
    qualname: str
    value: ast.expr
    params: tuple[str, ...] | None = None


@dataclass(frozen=True)
class TypeVarSymbol:
    name: str


@dataclass(frozen=True)
class FunctionSymbol:
    module: str
    node: ast.FunctionDef | ast.AsyncFunctionDef


@dataclass(frozen=True)
class ValueSymbol:
    module: str
    name: str


@dataclass(frozen=True)
class ImportSymbol:
    module: str
    name: str
    line: int = 0


@dataclass(frozen=True)
class ModuleSymbol:
    name: str


@dataclass(frozen=True)
class ExternalSymbol:
    """A name defined outside the analysed program, by fully qualified name."""

    qualname: str


Symbol = (
    ClassSymbol | AliasSymbol | TypeVarSymbol | FunctionSymbol | ValueSymbol
    | ImportSymbol | ModuleSymbol | ExternalSymbol
)


@dataclass(eq=False)
class ModuleInfo:
    name: str
    path: Path
    tree: ast.Module
    is_package: bool = False
    importable: bool = True
    symbols: dict[str, Symbol] = field(default_factory=dict)
    star_imports: list[str] = field(default_factory=list)
    module_imports: list[tuple[str, int]] = field(default_factory=list)
    all_names: list[str] | None = None

    def location(self, node: ast.AST | None = None) -> SourceLocation:
        if node is None:
            return SourceLocation(path=self.path)
        return SourceLocation(
            path=self.path,
            line=getattr(node, "lineno", 0),
            column=getattr(node, "col_offset", 0),
        )

    def is_exported(self, name: str) -> bool:
        if name.startswith("_"):
            return False
        if self.all_names is not None:
            return name in self.all_names
        return True


# -- analyser -----------------------------------------------------------------


class ProgramAnalyzer:
    """Statically loaded program: modules, symbols, diagnostics and type resolution."""

    def __init__(self, layout: ProgramLayout):
        from routes_to_openapi.analyzer.resolver import TypeResolver

        self.layout = layout
        self.modules: dict[str, ModuleInfo] = {}
        self._diagnostics: list[Diagnostic] = []
        self._available: dict[str, bool] = {}
        self._load()
        self._top_packages = {name.split(".")[0] for name in self.modules}
        self._check_imports()
        self.types = TypeResolver(self)

    @classmethod
    def load(cls, locator: Path) -> "ProgramAnalyzer":
        """Locate and load a program. Raises ProgramLoadError for a bad locator."""
        layout = locate_program(locator)
        analyzer = cls(layout)
        logger.info("Loaded %d modules from %s", len(analyzer.modules), layout.project_dir)
        return analyzer

    def diagnostics(self) -> list[Diagnostic]:
        return list(self._diagnostics)

    def resolve(self, site: DeclarationSite) -> ResolvedType:
        """Resolve the type annotated at ``site``, including every type it reaches."""
        return self.types.resolve(site)

    def iter_modules(self) -> list[ModuleInfo]:
        """Modules in source order: by source root, then by path."""
        return list(self.modules.values())

    # -- loading ---------------------------------------------------------------

    def _load(self) -> None:
        for root in self.layout.source_roots:
            for path in sorted(root.rglob("*.py")):
                rel = path.relative_to(root)
                if self._skipped(rel):
                    continue
                self._load_file(root, rel, path)

    def _skipped(self, rel: Path) -> bool:
        for part in rel.parts[:-1]:
            if part.startswith(".") or part in SKIP_DIRS:
                return True
        posix = rel.as_posix()
        return any(fnmatch(posix, pattern) for pattern in self.layout.exclude)

    def _load_file(self, root: Path, rel: Path, path: Path) -> None:
        parts = list(rel.with_suffix("").parts)
        is_package = parts[-1] == "__init__"
        if is_package:
            parts = parts[:-1]
        if not parts:
            return
        name = ".".join(parts)

        if name in self.modules:
            self._diagnostics.append(Diagnostic(
                severity="warning",
                message=f"module '{name}' is shadowed by {self.modules[name].path}",
                location=SourceLocation(path=path),
            ))
            return

        try:
            text = path.read_text(encoding="utf-8")
            tree = ast.parse(text, filename=str(path))
        except SyntaxError as e:
            self._diagnostics.append(Diagnostic(
                severity="error",
                message=f"SyntaxError: {e.msg}",
                location=SourceLocation(path=path, line=e.lineno or 0, column=e.offset or 0),
            ))
            return
        except (OSError, UnicodeDecodeError) as e:
            self._diagnostics.append(Diagnostic(
                severity="error",
                message=f"cannot read module: {e}",
                location=SourceLocation(path=path),
            ))
            return

        info = ModuleInfo(
            name=name,
            path=path,
            tree=tree,
            is_package=is_package,
            importable=all(p.isidentifier() for p in parts),
        )
        for stmt in top_level_statements(tree.body):
            self._collect(info, stmt)
        self.modules[name] = info

    def _collect(self, info: ModuleInfo, stmt: ast.stmt) -> None:
        if isinstance(stmt, ast.ClassDef):
            info.symbols[stmt.name] = ClassSymbol(info.name, f"{info.name}.{stmt.name}", stmt)
        elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            info.symbols[stmt.name] = FunctionSymbol(info.name, stmt)
        elif isinstance(stmt, ast.Import):
            for alias in stmt.names:
                info.module_imports.append((alias.name, stmt.lineno))
                if alias.asname:
                    info.symbols[alias.asname] = ModuleSymbol(alias.name)
                else:
                    top = alias.name.split(".")[0]
                    info.symbols[top] = ModuleSymbol(top)
        elif isinstance(stmt, ast.ImportFrom):
            module = self._absolute_module(info, stmt)
            if module is None:
                return
            for alias in stmt.names:
                if alias.name == "*":
                    info.star_imports.append(module)
                else:
                    info.symbols[alias.asname or alias.name] = ImportSymbol(module, alias.name, stmt.lineno)
        elif isinstance(stmt, getattr(ast, "TypeAlias", ())):
            params = tuple(p.name for p in stmt.type_params)
            name = stmt.name.id
            info.symbols[name] = AliasSymbol(info.name, f"{info.name}.{name}", stmt.value, params)
        elif isinstance(stmt, ast.Assign):
            if len(stmt.targets) == 1 and isinstance(stmt.targets[0], ast.Name):
                self._collect_assign(info, stmt.targets[0].id, stmt.value)
            else:
                for target in stmt.targets:
                    for node in ast.walk(target):
                        if isinstance(node, ast.Name):
                            info.symbols[node.id] = ValueSymbol(info.name, node.id)
        elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
            name = stmt.target.id
            if stmt.value is not None and _tail_name(stmt.annotation) == "TypeAlias":
                info.symbols[name] = AliasSymbol(info.name, f"{info.name}.{name}", stmt.value)
            else:
                info.symbols[name] = ValueSymbol(info.name, name)
        elif isinstance(stmt, ast.AugAssign) and isinstance(stmt.target, ast.Name):
            if stmt.target.id == "__all__" and info.all_names is not None:
                info.all_names.extend(_string_list(stmt.value) or [])

    def _collect_assign(self, info: ModuleInfo, name: str, value: ast.expr) -> None:
        if name == "__all__":
            names = _string_list(value)
            if names is not None:
                info.all_names = names
            info.symbols[name] = ValueSymbol(info.name, name)
            return

        if isinstance(value, ast.Call):
            factory = _tail_name(value.func)
            if factory in TYPEVAR_FACTORIES:
                info.symbols[name] = TypeVarSymbol(name)
            elif factory == "NewType" and len(value.args) == 2:
                info.symbols[name] = AliasSymbol(info.name, f"{info.name}.{name}", value.args[1])
            else:
                info.symbols[name] = ValueSymbol(info.name, name)
            return

        if _looks_like_type(value):
            info.symbols[name] = AliasSymbol(info.name, f"{info.name}.{name}", value)
        else:
            info.symbols[name] = ValueSymbol(info.name, name)

    def _absolute_module(self, info: ModuleInfo, stmt: ast.ImportFrom) -> str | None:
        if not stmt.level:
            return stmt.module
        parts = info.name.split(".")
        if not info.is_package:
            parts = parts[:-1]
        up = stmt.level - 1
        if up > len(parts) or (up == len(parts) and not stmt.module):
            self._diagnostics.append(Diagnostic(
                severity="error",
                message="attempted relative import beyond top-level package",
                location=info.location(stmt),
            ))
            return None
        base = parts[: len(parts) - up]
        if stmt.module:
            base.append(stmt.module)
        return ".".join(base)

    # -- diagnostics -----------------------------------------------------------

    def _check_imports(self) -> None:
        for info in self.modules.values():
            for symbol in info.symbols.values():
                if isinstance(symbol, ImportSymbol):
                    self._check_import(info, symbol)
            for module, line in info.module_imports:
                self._check_module(info, module, line)
            for module in info.star_imports:
                self._check_module(info, module, 0)

    def _check_import(self, info: ModuleInfo, symbol: ImportSymbol) -> None:
        location = SourceLocation(path=info.path, line=symbol.line)
        if not self._is_internal(symbol.module):
            if not self.external_available(symbol.module):
                self._diagnostics.append(Diagnostic(
                    severity="warning",
                    message=f"module '{symbol.module}' is not installed",
                    location=location,
                ))
            return

        if f"{symbol.module}.{symbol.name}" in self.modules:
            return
        target = self.modules.get(symbol.module)
        if target is None:
            self._diagnostics.append(Diagnostic(
                severity="error",
                message=f"cannot find module '{symbol.module}'",
                location=location,
            ))
            return
        if symbol.name not in target.symbols and not target.star_imports:
            self._diagnostics.append(Diagnostic(
                severity="error",
                message=f"cannot import name '{symbol.name}' from '{symbol.module}'",
                location=location,
            ))

    def _check_module(self, info: ModuleInfo, module: str, line: int) -> None:
        location = SourceLocation(path=info.path, line=line)
        if self._is_internal(module):
            if not self._module_exists(module):
                self._diagnostics.append(Diagnostic(
                    severity="error",
                    message=f"cannot find module '{module}'",
                    location=location,
                ))
        elif not self.external_available(module):
            self._diagnostics.append(Diagnostic(
                severity="warning",
                message=f"module '{module}' is not installed",
                location=location,
            ))

    def _is_internal(self, module: str) -> bool:
        return module.split(".")[0] in self._top_packages

    def _module_exists(self, module: str) -> bool:
        """A module file, or a namespace package containing one."""
        if module in self.modules:
            return True
        prefix = f"{module}."
        return any(name.startswith(prefix) for name in self.modules)

    def external_available(self, qualname: str) -> bool:
        """Whether the top-level module of ``qualname`` can be imported."""
        top = qualname.split(".")[0]
        if top not in self._available:
            if top in ALWAYS_AVAILABLE or top in sys.stdlib_module_names:
                self._available[top] = True
            else:
                try:
                    self._available[top] = importlib.util.find_spec(top) is not None
                except (ImportError, ValueError):
                    self._available[top] = False
        return self._available[top]

    # -- lookup ----------------------------------------------------------------

    def lookup(self, expr: ast.expr, module: str) -> Symbol:
        """Resolve a name or dotted attribute expression evaluated in ``module``."""
        if isinstance(expr, ast.Name):
            return self.lookup_name(module, expr.id)
        if isinstance(expr, ast.Attribute):
            return self.member(self.lookup(expr.value, module), expr.attr)
        raise TypeResolutionError(f"cannot resolve expression '{ast.unparse(expr)}'")

    def lookup_name(self, module: str, name: str, _seen: frozenset = frozenset()) -> Symbol:
        key = (module, name)
        if key in _seen:
            raise TypeResolutionError(f"circular import of '{name}' in module '{module}'")
        _seen = _seen | {key}

        info = self.modules.get(module)
        if info is None:
            return ExternalSymbol(f"{module}.{name}")

        symbol = info.symbols.get(name)
        if isinstance(symbol, ImportSymbol):
            return self._follow_import(symbol, _seen)
        if symbol is not None:
            return symbol

        for star in info.star_imports:
            if star in self.modules:
                try:
                    return self.lookup_name(star, name, _seen)
                except TypeResolutionError:
                    continue

        if name in BUILTIN_NAMES:
            return ExternalSymbol(f"builtins.{name}")
        raise TypeResolutionError(f"name '{name}' is not defined in module '{module}'")

    def _follow_import(self, symbol: ImportSymbol, seen: frozenset) -> Symbol:
        full = f"{symbol.module}.{symbol.name}"
        if self._module_exists(full):
            return ModuleSymbol(full)
        if symbol.module in self.modules:
            return self.lookup_name(symbol.module, symbol.name, seen)
        if self._is_internal(symbol.module):
            raise TypeResolutionError(f"module '{symbol.module}' not found in program")
        return ExternalSymbol(full)

    def member(self, base: Symbol, attr: str) -> Symbol:
        if isinstance(base, ModuleSymbol):
            full = f"{base.name}.{attr}"
            if self._module_exists(full):
                return ModuleSymbol(full)
            if base.name in self.modules:
                return self.lookup_name(base.name, attr)
            if self._is_internal(base.name):
                raise TypeResolutionError(f"module '{base.name}' not found in program")
            return ExternalSymbol(full)
        if isinstance(base, ExternalSymbol):
            return ExternalSymbol(f"{base.qualname}.{attr}")
        if isinstance(base, ClassSymbol):
            for stmt in base.node.body:
                if isinstance(stmt, ast.ClassDef) and stmt.name == attr:
                    return ClassSymbol(base.module, f"{base.qualname}.{attr}", stmt)
            raise TypeResolutionError(f"'{base.qualname}' has no nested class '{attr}'")
        raise TypeResolutionError(f"cannot resolve attribute '{attr}'")


# -- helpers ------------------------------------------------------------------


def top_level_statements(body: list[ast.stmt]):
    """Yield module-level statements, descending into top-level if/try blocks."""
    for stmt in body:
        if isinstance(stmt, ast.If):
            yield from top_level_statements(stmt.body)
            yield from top_level_statements(stmt.orelse)
        elif isinstance(stmt, ast.Try):
            yield from top_level_statements(stmt.body)
            for handler in stmt.handlers:
                yield from top_level_statements(handler.body)
            yield from top_level_statements(stmt.orelse)
            yield from top_level_statements(stmt.finalbody)
        else:
            yield stmt


def _tail_name(expr: ast.expr) -> str | None:
    if isinstance(expr, ast.Name):
        return expr.id
    if isinstance(expr, ast.Attribute):
        return expr.attr
    return None


def _string_list(value: ast.expr) -> list[str] | None:
    if not isinstance(value, (ast.List, ast.Tuple)):
        return None
    names = []
    for elt in value.elts:
        if not (isinstance(elt, ast.Constant) and isinstance(elt.value, str)):
            return None
        names.append(elt.value)
    return names


def _looks_like_type(value: ast.expr) -> bool:
    if isinstance(value, (ast.Name, ast.Attribute, ast.Subscript)):
        return True
    if isinstance(value, ast.BinOp) and isinstance(value.op, ast.BitOr):
        return _union_operand(value.left) and _union_operand(value.right)
    return False


def _union_operand(value: ast.expr) -> bool:
    if isinstance(value, ast.Constant):
        return value.value is None or isinstance(value.value, str)
    return _looks_like_type(value)
