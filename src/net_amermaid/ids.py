"""Unique identifiers for diagrammed types.

Ids end up as mermaid node names, ``<option>`` values and parts of DOM ids,
so they must match ``\\w+``.  Selected types get their short name where it is
unique and a numbered short name where it is not.  Any other type that shows
up later (outside references, type parameters) gets an id derived from its
full name.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from net_amermaid.typesystem import TypeRef

_NON_WORD = re.compile(r"\W")


def _safe(text: str) -> str:
    return _NON_WORD.sub("_", text)


class IdAllocator:
    """Per-run id table.  Every id is handed out once and never changes."""

    def __init__(self) -> None:
        self._ids: dict[TypeRef, str] = {}
        self._taken: set[str] = set()

    def __contains__(self, ref: TypeRef) -> bool:
        return ref.generic_definition in self._ids

    def assign(self, types: Iterable[TypeRef]) -> dict[TypeRef, str]:
        """Allocate ids for the selected *types*.

        Numbering of same-named types follows the order of *types*, so callers
        must pass them in a stable order (sorted by full name).
        """
        refs = list(dict.fromkeys(t.generic_definition for t in types))
        groups: dict[str, list[TypeRef]] = {}
        for ref in refs:
            groups.setdefault(ref.name, []).append(ref)

        # the majority: short names that are unique
        for name, group in groups.items():
            if len(group) == 1 and group[0] not in self._ids and _safe(name) not in self._taken:
                self._claim(group[0], _safe(name))

        # number the rest, skipping ordinals that clash with a name already taken
        for name, group in groups.items():
            counter = 0
            for ref in group:
                if ref in self._ids:
                    continue
                counter += 1
                while f"{_safe(name)}{counter}" in self._taken:
                    counter += 1
                self._claim(ref, f"{_safe(name)}{counter}")

        logger.debug("Allocated {} type ids ({} shared short names)", len(refs), sum(len(g) > 1 for g in groups.values()))
        return {ref: self._ids[ref] for ref in refs}

    def get_id(self, ref: TypeRef) -> str:
        return self.get_id_and_open_generic(ref)[0]

    def get_id_and_open_generic(self, ref: TypeRef) -> tuple[str, TypeRef | None]:
        """Id of *ref*, plus its open generic definition if *ref* is a constructed generic.

        Constructed generics like ``Store<int>`` share the id of ``Store<T>``.
        """
        open_generic = ref.generic_definition if ref.type_arguments else None
        ref = open_generic or ref
        known = self._ids.get(ref)
        if known is not None:
            return known, open_generic

        # not selected: derive from the full name, type parameters disambiguate generic overloads
        type_params = "_" + "_".join(self.get_id(p) for p in ref.arguments) if ref.type_parameters else ""
        candidate = _safe(ref.full_name) + type_params
        unique, suffix = candidate, 0
        while unique in self._taken:
            suffix += 1
            unique = f"{candidate}_{suffix}"
        self._claim(ref, unique)
        return unique, open_generic

    def _claim(self, ref: TypeRef, type_id: str) -> None:
        self._ids[ref] = type_id
        self._taken.add(type_id)
