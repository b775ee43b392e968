"""Evaluate annotation expressions into interned ``ResolvedType`` handles.

Annotations are evaluated against the analyser's symbol tables, never by
importing the program. Generic classes and aliases are instantiated by
binding their type parameters to the evaluated arguments; each distinct
instantiation gets its own handle.
"""

import ast
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from routes_to_openapi.analyzer.base import DeclarationSite, SourceLocation
from routes_to_openapi.analyzer.program import (
    AliasSymbol,
    ClassSymbol,
    ExternalSymbol,
    FunctionSymbol,
    ModuleSymbol,
    TypeVarSymbol,
    ValueSymbol,
)
from routes_to_openapi.analyzer.types import Property, ResolvedType, TypeChildren, TypeKind
from routes_to_openapi.errors import TypeResolutionError

logger = logging.getLogger(__name__)

PRIMITIVES: dict[str, tuple[str, str | None]] = {
    "builtins.str": ("string", None),
    "builtins.int": ("integer", None),
    "builtins.float": ("number", None),
    "builtins.bool": ("boolean", None),
    "builtins.bytes": ("string", "binary"),
    "builtins.bytearray": ("string", "binary"),
    "builtins.NoneType": ("null", None),
    "types.NoneType": ("null", None),
    "typing.LiteralString": ("string", None),
    "datetime.datetime": ("string", "date-time"),
    "datetime.date": ("string", "date"),
    "datetime.time": ("string", "time"),
    "datetime.timedelta": ("string", "duration"),
    "uuid.UUID": ("string", "uuid"),
    "decimal.Decimal": ("number", None),
    "pathlib.Path": ("string", None),
    "pydantic.EmailStr": ("string", "email"),
    "pydantic.AnyUrl": ("string", "uri"),
    "pydantic.HttpUrl": ("string", "uri"),
}

ANY_TYPES = {"typing.Any", "builtins.object"}
ARRAY_TYPES = {
    "builtins.list", "typing.List", "typing.Sequence", "typing.MutableSequence",
    "typing.Iterable", "typing.Collection", "typing.Iterator", "typing.Deque",
}
SET_TYPES = {
    "builtins.set", "builtins.frozenset", "typing.Set", "typing.FrozenSet",
    "typing.AbstractSet", "typing.MutableSet",
}
TUPLE_TYPES = {"builtins.tuple", "typing.Tuple"}
MAPPING_TYPES = {
    "builtins.dict", "typing.Dict", "typing.Mapping", "typing.MutableMapping",
    "typing.OrderedDict", "typing.DefaultDict",
}
# Wrappers whose first argument is the type itself.
TRANSPARENT = {
    "typing.Annotated", "typing.Final", "typing.ClassVar",
    "typing.Required", "typing.NotRequired", "typing.ReadOnly",
}
# Wrappers whose last argument is the resolved value.
AWAITABLES = {"typing.Awaitable", "typing.Coroutine"}

ENUM_BASES = {"enum.Enum", "enum.IntEnum", "enum.StrEnum", "enum.Flag", "enum.IntFlag"}
RECORD_BASES = {"typing.NamedTuple", "builtins.object", "abc.ABC", "builtins.str", "builtins.int"}
PYDANTIC_BASES = {"pydantic.BaseModel", "pydantic.main.BaseModel"}

# How many new instantiations of one generic may be created while loading
# that same generic's members (e.g. Nest[int] -> Nest[list[int]] -> ...).
MAX_GENERIC_NESTING = 3

_RENAMES = {
    "typing_extensions.": "typing.",
    "collections.abc.": "typing.",
    "collections.OrderedDict": "typing.OrderedDict",
    "collections.defaultdict": "typing.DefaultDict",
    "collections.deque": "typing.Deque",
}


def normalize_qualname(qualname: str) -> str:
    for prefix, replacement in _RENAMES.items():
        if qualname.startswith(prefix):
            return replacement + qualname[len(prefix):]
    return qualname


@dataclass
class Scope:
    module: str
    bindings: dict[str, ResolvedType] = field(default_factory=dict)


@dataclass
class ClassFlavor:
    kind: str = "record"  # record / enum / unsupported
    typed_dict: bool = False
    total: bool = True
    pydantic: bool = False
    params: tuple[str, ...] = ()


class TypeResolver:
    """Turns annotation expressions into interned type handles."""

    def __init__(self, program):
        self.program = program
        self._interned: dict[tuple, ResolvedType] = {}
        self._flavors: dict[str, ClassFlavor] = {}
        self._in_progress: set[str] = set()
        self._loading: list[tuple[str, int]] = []

    def resolve(self, site: DeclarationSite) -> ResolvedType:
        try:
            rtype = self.evaluate(site.node, Scope(site.module))
            self._force(rtype)
        except TypeResolutionError as e:
            raise TypeResolutionError(e.message, location=e.location or str(site.location)) from None
        return rtype

    def _force(self, root: ResolvedType) -> None:
        """Resolve every type reachable from ``root`` so failures surface now."""
        seen: set[int] = set()
        stack = [root]
        while stack:
            rtype = stack.pop()
            if id(rtype) in seen:
                continue
            seen.add(id(rtype))
            stack.extend(rtype.child_types())

    # -- evaluation ------------------------------------------------------------

    def evaluate(self, node: ast.expr, scope: Scope) -> ResolvedType:
        if isinstance(node, ast.Constant):
            if node.value is None:
                return self.primitive("null")
            if isinstance(node.value, str):
                return self.evaluate(self._parse_forward(node.value), scope)
            raise TypeResolutionError(f"'{ast.unparse(node)}' is not a type")

        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return self.union([self.evaluate(node.left, scope), self.evaluate(node.right, scope)])

        if isinstance(node, ast.Name) and node.id in scope.bindings:
            return scope.bindings[node.id]

        if isinstance(node, (ast.Name, ast.Attribute)):
            symbol = self.program.lookup(node, scope.module)
            return self._from_symbol(symbol, None, scope, node)

        if isinstance(node, ast.Subscript):
            symbol = self.program.lookup(node.value, scope.module)
            if isinstance(node.slice, ast.Tuple):
                args = list(node.slice.elts)
            else:
                args = [node.slice]
            return self._from_symbol(symbol, args, scope, node)

        return self.unsupported(ast.unparse(node))

    def _parse_forward(self, text: str) -> ast.expr:
        try:
            return ast.parse(text.strip(), mode="eval").body
        except SyntaxError:
            raise TypeResolutionError(f"invalid forward reference '{text}'") from None

    def _from_symbol(self, symbol, args, scope: Scope, node: ast.expr) -> ResolvedType:
        if isinstance(symbol, TypeVarSymbol):
            return scope.bindings.get(symbol.name) or self.any_type()
        if isinstance(symbol, ClassSymbol):
            return self._class_type(symbol, args, scope)
        if isinstance(symbol, AliasSymbol):
            return self._alias_type(symbol, args, scope)
        if isinstance(symbol, ExternalSymbol):
            return self._external_type(normalize_qualname(symbol.qualname), args, scope, node)
        if isinstance(symbol, ModuleSymbol):
            raise TypeResolutionError(f"module '{symbol.name}' is used as a type")
        if isinstance(symbol, (FunctionSymbol, ValueSymbol)):
            return self.unsupported(ast.unparse(node))
        raise TypeResolutionError(f"cannot resolve '{ast.unparse(node)}'")

    def _external_type(self, qualname: str, args, scope: Scope, node: ast.expr) -> ResolvedType:
        if qualname in PRIMITIVES:
            primitive, fmt = PRIMITIVES[qualname]
            return self.primitive(primitive, fmt)
        if qualname in ANY_TYPES:
            return self.any_type()
        if qualname in ARRAY_TYPES or qualname in SET_TYPES:
            item = self.evaluate(args[0], scope) if args else self.any_type()
            return self.array(item, unique=qualname in SET_TYPES)
        if qualname in TUPLE_TYPES:
            return self._tuple(args, scope)
        if qualname in MAPPING_TYPES:
            value = self.evaluate(args[1], scope) if args and len(args) > 1 else self.any_type()
            return self.mapping(value)
        if qualname == "typing.Union":
            return self.union([self.evaluate(a, scope) for a in args or []])
        if qualname == "typing.Optional":
            if not args:
                raise TypeResolutionError("Optional requires a type argument")
            return self.union([self.evaluate(args[0], scope), self.primitive("null")])
        if qualname == "typing.Literal":
            return self._literal(args or [])
        if qualname in TRANSPARENT:
            if not args:
                raise TypeResolutionError(f"{qualname} requires a type argument")
            return self.evaluate(args[0], scope)
        if qualname in AWAITABLES:
            return self.evaluate(args[-1], scope) if args else self.any_type()

        if not self.program.external_available(qualname):
            top = qualname.split(".")[0]
            raise TypeResolutionError(f"cannot resolve '{qualname}': module '{top}' is not available")
        return self.unsupported(ast.unparse(node))

    def _tuple(self, args, scope: Scope) -> ResolvedType:
        if not args:
            return self.array(self.any_type())
        if len(args) == 2 and isinstance(args[1], ast.Constant) and args[1].value is Ellipsis:
            return self.array(self.evaluate(args[0], scope))
        if len(args) == 1 and isinstance(args[0], ast.Tuple) and not args[0].elts:
            return self.tuple_of([])
        return self.tuple_of([self.evaluate(a, scope) for a in args])

    def _literal(self, args: list[ast.expr]) -> ResolvedType:
        values: list[Any] = []
        for arg in args:
            try:
                value = ast.literal_eval(arg)
            except ValueError:
                return self.unsupported(f"Literal[{', '.join(ast.unparse(a) for a in args)}]")
            if value is not None and not isinstance(value, (str, int, bool)):
                return self.unsupported(f"Literal[{', '.join(ast.unparse(a) for a in args)}]")
            values.append(value)

        has_none = None in values
        values = [v for v in values if v is not None]
        if not values:
            return self.primitive("null")
        key = ("literal", tuple((type(v).__name__, v) for v in values))
        literal = self._intern(key, lambda: ResolvedType(
            TypeKind.LITERAL,
            f"Literal[{', '.join(repr(v) for v in values)}]",
            values=tuple(values),
        ))
        if has_none:
            return self.union([literal, self.primitive("null")])
        return literal

    # -- classes ---------------------------------------------------------------

    def _class_type(self, symbol: ClassSymbol, args, scope: Scope) -> ResolvedType:
        flavor = self.class_flavor(symbol)
        if flavor.kind == "unsupported":
            return self.unsupported(symbol.qualname)
        if flavor.kind == "enum":
            return self._intern(("enum", symbol.qualname), lambda: ResolvedType(
                TypeKind.ENUM,
                symbol.node.name,
                name=symbol.node.name,
                qualname=symbol.qualname,
                values=_enum_values(symbol.node),
            ))

        arg_types = [self.evaluate(a, scope) for a in args or []]
        if len(arg_types) > len(flavor.params):
            raise TypeResolutionError(
                f"'{symbol.qualname}' takes {len(flavor.params)} type argument(s), got {len(arg_types)}"
            )
        bindings = {
            param: arg_types[i] if i < len(arg_types) else self.any_type()
            for i, param in enumerate(flavor.params)
        }
        bound = [bindings[p] for p in flavor.params]
        key = ("class", symbol.qualname, tuple(id(t) for t in bound))
        existing = self._interned.get(key)
        if existing is not None:
            return existing
        depth = self._nesting(symbol.qualname)
        if depth > MAX_GENERIC_NESTING:
            return self._too_deep(symbol.qualname, _generic_text(symbol.node.name, bound))
        return self._intern(key, lambda: ResolvedType(
            TypeKind.OBJECT,
            _generic_text(symbol.node.name, bound),
            name=_generic_name(symbol.node.name, bound),
            qualname=_generic_text(symbol.qualname, bound),
            loader=lambda: self._load(symbol.qualname, depth, lambda: self._class_members(symbol, bindings, flavor)),
        ))

    def _nesting(self, qualname: str) -> int:
        """Depth of a new instantiation of ``qualname`` created by the current member load."""
        for loading, depth in reversed(self._loading):
            if loading == qualname:
                return depth + 1
        return 0

    def _load(self, qualname: str, depth: int, loader) -> TypeChildren:
        self._loading.append((qualname, depth))
        try:
            return loader()
        finally:
            self._loading.pop()

    def _too_deep(self, qualname: str, text: str) -> ResolvedType:
        logger.warning("Generic '%s' instantiates itself with ever larger arguments; '%s' is unsupported", qualname, text)
        return self.unsupported(text)

    def class_flavor(self, symbol: ClassSymbol) -> ClassFlavor:
        """Classify a class declaration by its bases (record, enum or unsupported)."""
        cached = self._flavors.get(symbol.qualname)
        if cached is not None:
            return cached
        if symbol.qualname in self._in_progress:
            return ClassFlavor(kind="unsupported")

        self._in_progress.add(symbol.qualname)
        try:
            flavor = self._compute_flavor(symbol)
        finally:
            self._in_progress.discard(symbol.qualname)
        self._flavors[symbol.qualname] = flavor
        return flavor

    def _compute_flavor(self, symbol: ClassSymbol) -> ClassFlavor:
        flavor = ClassFlavor()
        explicit: list[str] | None = None
        implicit: list[str] = []
        type_params = getattr(symbol.node, "type_params", None) or []
        if type_params:
            explicit = [p.name for p in type_params]

        for base in symbol.node.bases:
            head = base.value if isinstance(base, ast.Subscript) else base
            if not isinstance(head, (ast.Name, ast.Attribute)):
                # Computed bases such as declarative_base().
                logger.debug("Class %s has computed base %s", symbol.qualname, ast.unparse(base))
                flavor.kind = "unsupported"
                continue
            try:
                base_symbol = self.program.lookup(head, symbol.module)
            except TypeResolutionError as e:
                raise TypeResolutionError(
                    f"base class of '{symbol.qualname}': {e.message}",
                    location=str(SourceLocation(path=self.program.modules[symbol.module].path, line=base.lineno)),
                ) from None

            if isinstance(base_symbol, ExternalSymbol):
                qualname = normalize_qualname(base_symbol.qualname)
                if qualname in ("typing.Generic", "typing.Protocol"):
                    if isinstance(base, ast.Subscript):
                        explicit = self._typevars_in(base.slice, symbol.module)
                elif qualname == "typing.TypedDict":
                    flavor.typed_dict = True
                elif qualname in ENUM_BASES:
                    flavor.kind = "enum"
                elif qualname in PYDANTIC_BASES:
                    flavor.pydantic = True
                elif not self.program.external_available(qualname):
                    raise TypeResolutionError(
                        f"base class '{qualname}' of '{symbol.qualname}' comes from a module that is not available"
                    )
                elif qualname not in RECORD_BASES:
                    logger.debug("Class %s has unsupported base %s", symbol.qualname, qualname)
                    flavor.kind = "unsupported"
            elif isinstance(base_symbol, ClassSymbol):
                base_flavor = self.class_flavor(base_symbol)
                if base_flavor.kind != "record":
                    flavor.kind = base_flavor.kind
                flavor.typed_dict = flavor.typed_dict or base_flavor.typed_dict
                flavor.pydantic = flavor.pydantic or base_flavor.pydantic
                if isinstance(base, ast.Subscript):
                    implicit.extend(self._typevars_in(base.slice, symbol.module))
            else:
                flavor.kind = "unsupported"

        for keyword in symbol.node.keywords:
            if keyword.arg == "total" and isinstance(keyword.value, ast.Constant):
                flavor.total = bool(keyword.value.value)

        params = explicit if explicit is not None else implicit
        flavor.params = tuple(dict.fromkeys(params))
        return flavor

    def _class_members(self, symbol: ClassSymbol, bindings: dict, flavor: ClassFlavor) -> TypeChildren:
        scope = Scope(symbol.module, dict(bindings))
        module = self.program.modules[symbol.module]
        members: dict[str, Property] = {}

        for base in reversed(symbol.node.bases):
            head = base.value if isinstance(base, ast.Subscript) else base
            if not isinstance(head, (ast.Name, ast.Attribute)):
                continue
            base_symbol = self.program.lookup(head, symbol.module)
            if not isinstance(base_symbol, ClassSymbol):
                continue
            base_args = None
            if isinstance(base, ast.Subscript):
                base_args = list(base.slice.elts) if isinstance(base.slice, ast.Tuple) else [base.slice]
            base_type = self._class_type(base_symbol, base_args, scope)
            for prop in base_type.properties():
                members[prop.name] = prop

        for stmt in symbol.node.body:
            if not (isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name)):
                continue
            name = stmt.target.id
            if name.startswith("_") or name == "model_config":
                continue
            try:
                classvar, required = self._field_modifiers(stmt.annotation, symbol.module)
                if classvar:
                    continue
                ftype = self.evaluate(stmt.annotation, scope)
            except TypeResolutionError as e:
                raise TypeResolutionError(
                    f"field '{symbol.node.name}.{name}': {e.message}",
                    location=e.location or str(module.location(stmt)),
                ) from None

            if flavor.typed_dict:
                optional = not flavor.total
            else:
                optional = _has_default(stmt.value)
            if required is not None:
                optional = not required
            if flavor.pydantic:
                name = _field_alias(stmt.value) or name
            members[name] = Property(name=name, type=ftype, optional=optional)

        return TypeChildren(properties=list(members.values()))

    def _field_modifiers(self, annotation: ast.expr, module: str) -> tuple[bool, bool | None]:
        """Peel annotation wrappers: (is ClassVar, Required/NotRequired override)."""
        node = annotation
        while True:
            if isinstance(node, ast.Constant) and isinstance(node.value, str):
                node = self._parse_forward(node.value)
                continue
            if not isinstance(node, ast.Subscript):
                return False, None
            try:
                symbol = self.program.lookup(node.value, module)
            except TypeResolutionError:
                return False, None
            if not isinstance(symbol, ExternalSymbol):
                return False, None
            qualname = normalize_qualname(symbol.qualname)
            if qualname == "typing.ClassVar":
                return True, None
            if qualname == "typing.Required":
                return False, True
            if qualname == "typing.NotRequired":
                return False, False
            if qualname in ("typing.Annotated", "typing.Final", "typing.ReadOnly"):
                node = node.slice.elts[0] if isinstance(node.slice, ast.Tuple) else node.slice
                continue
            return False, None

    # -- aliases ---------------------------------------------------------------

    def _alias_type(self, symbol: AliasSymbol, args, scope: Scope) -> ResolvedType:
        params = symbol.params
        if params is None:
            params = tuple(self._typevars_in(symbol.value, symbol.module))
        arg_types = [self.evaluate(a, scope) for a in args or []]
        if len(arg_types) > len(params):
            raise TypeResolutionError(
                f"'{symbol.qualname}' takes {len(params)} type argument(s), got {len(arg_types)}"
            )
        bindings = {
            param: arg_types[i] if i < len(arg_types) else self.any_type()
            for i, param in enumerate(params)
        }
        bound = [bindings[p] for p in params]
        short = symbol.qualname.rsplit(".", 1)[-1]
        key = ("alias", symbol.qualname, tuple(id(t) for t in bound))
        existing = self._interned.get(key)
        if existing is not None:
            return existing
        depth = self._nesting(symbol.qualname)
        if depth > MAX_GENERIC_NESTING:
            return self._too_deep(symbol.qualname, _generic_text(short, bound))
        return self._intern(key, lambda: ResolvedType(
            TypeKind.ALIAS,
            _generic_text(short, bound),
            name=_generic_name(short, bound),
            qualname=_generic_text(symbol.qualname, bound),
            loader=lambda: self._load(symbol.qualname, depth, lambda: TypeChildren(
                target=self.evaluate(symbol.value, Scope(symbol.module, dict(bindings))),
            )),
        ))

    def _typevars_in(self, node: ast.expr, module: str) -> list[str]:
        """TypeVar names used in ``node``, in source order."""
        found: list[str] = []

        def visit(n: ast.AST) -> None:
            if isinstance(n, ast.Name):
                try:
                    symbol = self.program.lookup_name(module, n.id)
                except TypeResolutionError:
                    symbol = None
                if isinstance(symbol, TypeVarSymbol) and n.id not in found:
                    found.append(n.id)
            for child in ast.iter_child_nodes(n):
                visit(child)

        visit(node)
        return found

    # -- constructors ----------------------------------------------------------

    def _intern(self, key: tuple, factory) -> ResolvedType:
        rtype = self._interned.get(key)
        if rtype is None:
            rtype = factory()
            self._interned[key] = rtype
        return rtype

    def primitive(self, primitive: str, fmt: str | None = None) -> ResolvedType:
        text = primitive if fmt is None else f"{primitive}<{fmt}>"
        return self._intern(("primitive", primitive, fmt), lambda: ResolvedType(
            TypeKind.PRIMITIVE, text, primitive=primitive, fmt=fmt,
        ))

    def any_type(self) -> ResolvedType:
        return self._intern(("any",), lambda: ResolvedType(TypeKind.ANY, "Any"))

    def unsupported(self, text: str) -> ResolvedType:
        return self._intern(("unsupported", text), lambda: ResolvedType(TypeKind.UNSUPPORTED, text))

    def array(self, item: ResolvedType, unique: bool = False) -> ResolvedType:
        head = "set" if unique else "list"
        return self._intern(("array", id(item), unique), lambda: ResolvedType(
            TypeKind.ARRAY,
            f"{head}[{item.text}]",
            unique=unique,
            children=TypeChildren(elements=[item]),
        ))

    def tuple_of(self, elements: list[ResolvedType]) -> ResolvedType:
        return self._intern(("tuple", tuple(id(e) for e in elements)), lambda: ResolvedType(
            TypeKind.TUPLE,
            f"tuple[{', '.join(e.text for e in elements) or '()'}]",
            children=TypeChildren(elements=list(elements)),
        ))

    def mapping(self, value: ResolvedType) -> ResolvedType:
        return self._intern(("mapping", id(value)), lambda: ResolvedType(
            TypeKind.MAPPING,
            f"dict[str, {value.text}]",
            children=TypeChildren(value_type=value),
        ))

    def union(self, members: list[ResolvedType]) -> ResolvedType:
        flat: list[ResolvedType] = []
        for member in members:
            parts = member.alternatives() if member.kind is TypeKind.UNION else [member]
            for part in parts:
                if not any(part is seen for seen in flat):
                    flat.append(part)
        if not flat:
            raise TypeResolutionError("empty union")
        if len(flat) == 1:
            return flat[0]
        return self._intern(("union", tuple(id(m) for m in flat)), lambda: ResolvedType(
            TypeKind.UNION,
            " | ".join(m.text for m in flat),
            children=TypeChildren(alternatives=flat),
        ))


# -- helpers ------------------------------------------------------------------


def _generic_text(base: str, args: list[ResolvedType]) -> str:
    if not args:
        return base
    return f"{base}[{', '.join(a.text for a in args)}]"


def _generic_name(base: str, args: list[ResolvedType]) -> str:
    parts = [base]
    for arg in args:
        parts.append(arg.name if arg.named else re.sub(r"[^A-Za-z0-9]+", "_", arg.text).strip("_"))
    return "_".join(p for p in parts if p)


def _has_default(value: ast.expr | None) -> bool:
    if value is None:
        return False
    if isinstance(value, ast.Call) and _call_name(value) in ("Field", "field"):
        keywords = {k.arg: k.value for k in value.keywords if k.arg}
        if "default_factory" in keywords:
            return True
        if "default" in keywords:
            return not _is_ellipsis(keywords["default"])
        if value.args:
            return not _is_ellipsis(value.args[0])
        return False
    return True


def _field_alias(value: ast.expr | None) -> str | None:
    if isinstance(value, ast.Call) and _call_name(value) == "Field":
        for keyword in value.keywords:
            if keyword.arg in ("alias", "serialization_alias") and isinstance(keyword.value, ast.Constant):
                if isinstance(keyword.value.value, str):
                    return keyword.value.value
    return None


def _call_name(call: ast.Call) -> str | None:
    if isinstance(call.func, ast.Name):
        return call.func.id
    if isinstance(call.func, ast.Attribute):
        return call.func.attr
    return None


def _is_ellipsis(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is Ellipsis


def _enum_values(node: ast.ClassDef) -> tuple[Any, ...]:
    values: list[Any] = []
    counter = 0
    for stmt in node.body:
        if not (isinstance(stmt, ast.Assign) and len(stmt.targets) == 1):
            continue
        target = stmt.targets[0]
        if not isinstance(target, ast.Name) or target.id.startswith("_"):
            continue
        if isinstance(stmt.value, ast.Call) and _call_name(stmt.value) == "auto":
            counter += 1
            values.append(counter)
            continue
        try:
            value = ast.literal_eval(stmt.value)
        except ValueError:
            continue
        if isinstance(value, (str, int, float, bool)):
            values.append(value)
            if isinstance(value, int):
                counter = value
    return tuple(values)
