"""Per-run store of synthesized schemas, keyed by resolved type identity."""

import re
from dataclasses import dataclass
from typing import Any

from routes_to_openapi.analyzer.types import ResolvedType
from routes_to_openapi.schema.nodes import ReferenceNode, SchemaNode, to_json_schema

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(eq=False)
class RegistryEntry:
    name: str
    type: ResolvedType
    node: SchemaNode | None = None

    @property
    def complete(self) -> bool:
        return self.node is not None


class SchemaRegistry:
    """Named component schemas plus a memo of inline (unnamed) schemas.

    Entries are keyed by ``id()`` of the handle; the handle itself is kept
    alive by the entry so ids stay unique for the registry's lifetime.
    """

    def __init__(self) -> None:
        self._entries: dict[int, RegistryEntry] = {}
        self._by_name: dict[str, RegistryEntry] = {}
        self._inline: dict[int, tuple[ResolvedType, SchemaNode]] = {}

    def __contains__(self, rtype: ResolvedType) -> bool:
        return id(rtype) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, rtype: ResolvedType) -> RegistryEntry | None:
        return self._entries.get(id(rtype))

    def reserve(self, rtype: ResolvedType) -> RegistryEntry:
        """Claim a component name for ``rtype`` before its schema is built."""
        entry = self._entries.get(id(rtype))
        if entry is not None:
            return entry
        entry = RegistryEntry(name=self._pick_name(rtype), type=rtype)
        self._entries[id(rtype)] = entry
        self._by_name[entry.name] = entry
        return entry

    def complete(self, rtype: ResolvedType, node: SchemaNode) -> RegistryEntry:
        entry = self._entries[id(rtype)]
        entry.node = node
        return entry

    def inline(self, rtype: ResolvedType) -> SchemaNode | None:
        cached = self._inline.get(id(rtype))
        return cached[1] if cached else None

    def remember(self, rtype: ResolvedType, node: SchemaNode) -> None:
        self._inline[id(rtype)] = (rtype, node)

    def _pick_name(self, rtype: ResolvedType) -> str:
        candidates = [_sanitize(rtype.name or rtype.text)]
        if rtype.qualname:
            candidates.append(_sanitize(rtype.qualname))
        for candidate in candidates:
            if candidate and candidate not in self._by_name:
                return candidate
        base = candidates[-1] or "Schema"
        n = 2
        while f"{base}_{n}" in self._by_name:
            n += 1
        return f"{base}_{n}"

    # -- reading ---------------------------------------------------------------

    def entries(self) -> list[RegistryEntry]:
        return sorted(self._entries.values(), key=lambda e: e.name)

    def schema(self, name: str) -> SchemaNode:
        entry = self._by_name.get(name)
        if entry is None or entry.node is None:
            raise KeyError(name)
        return entry.node

    def components(self) -> dict[str, dict[str, Any]]:
        """Rendered component schemas, sorted by name."""
        return {
            entry.name: to_json_schema(entry.node)
            for entry in self.entries()
            if entry.node is not None
        }

    def deref(self, node: SchemaNode) -> SchemaNode:
        """Follow reference nodes until a non-reference schema is reached."""
        seen: set[str] = set()
        while isinstance(node, ReferenceNode):
            if node.name in seen:
                raise ValueError(f"reference cycle through '{node.name}'")
            seen.add(node.name)
            node = self.schema(node.name)
        return node


def _sanitize(name: str) -> str:
    return _INVALID_NAME_CHARS.sub("_", name).strip("_")
