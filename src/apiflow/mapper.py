"""Bidirectional payload mapping between wire entities and caller DTOs.

The executor only depends on the :class:`PayloadMapper` protocol: request
bodies of POST/PUT/PATCH calls go through ``to_entity`` before they are sent,
and response payloads come back through ``to_dto``.  Lists are mapped element
by element with the ``*_list`` variants.

:class:`FieldMapper` is a ready-made, immutable implementation for the common
case of dictionaries whose keys differ between the two sides::

    mapper = (
        FieldMapper("user")
        .field("first_name", "firstName")
        .field("created", "createdAt", to_dto=parse_date, to_entity=str)
        .computed(dto="fullName", value=lambda e: f"{e['first_name']} {e['last_name']}")
        .ignore("password_hash")
    )
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class PayloadMapper(Protocol):
    """What the executor needs from an endpoint's ``mapper``."""

    def to_dto(self, entity: Any) -> Any: ...

    def to_entity(self, dto: Any) -> Any: ...

    def to_dto_list(self, entities: Any) -> list[Any]: ...

    def to_entity_list(self, dtos: Any) -> list[Any]: ...


@dataclass(frozen=True)
class FieldMapping:
    """One renamed field, with optional value transforms for each direction.

    ``to_dto`` is called as ``fn(value, entity)`` and ``to_entity`` as
    ``fn(value, dto)``.
    """

    entity_field: str
    dto_field: str
    to_dto: Optional[Callable[[Any, Any], Any]] = None
    to_entity: Optional[Callable[[Any, Any], Any]] = None


@dataclass(frozen=True)
class FieldMapper:
    """Immutable dictionary mapper built from field renames, computed fields and ignores.

    Every builder method returns a new mapper, so a base mapper can be shared
    and specialised safely.

    Mapping rules:

    * ``to_dto`` copies every entity key except ignored ones, renaming mapped
      fields, then adds the DTO-side computed fields (``value(entity)``).
    * ``to_entity`` does the reverse, also dropping keys that are DTO-side
      computed fields, then adds the entity-side computed fields
      (``value(dto)``).
    * Falsy payloads (``None``, empty dicts) are returned unchanged; the
      list variants return ``[]`` for ``None``.
    """

    name: str = ""
    mappings: tuple[FieldMapping, ...] = ()
    computed_dto: tuple[tuple[str, Callable[[Any], Any]], ...] = ()
    computed_entity: tuple[tuple[str, Callable[[Any], Any]], ...] = ()
    ignored: frozenset[str] = frozenset()

    # -- builders --

    def field(
        self,
        entity_field: str,
        dto_field: str,
        *,
        to_dto: Optional[Callable[[Any, Any], Any]] = None,
        to_entity: Optional[Callable[[Any, Any], Any]] = None,
    ) -> FieldMapper:
        """Map *entity_field* on the wire to *dto_field* for callers."""
        if not entity_field or not dto_field:
            raise ValueError("Field mapping needs both an entity and a dto field")
        mapping = FieldMapping(entity_field, dto_field, to_dto, to_entity)
        kept = tuple(m for m in self.mappings if m.entity_field != entity_field)
        return dataclasses.replace(self, mappings=kept + (mapping,))

    def computed(
        self,
        *,
        value: Callable[[Any], Any],
        dto: Optional[str] = None,
        entity: Optional[str] = None,
    ) -> FieldMapper:
        """Add a field computed from the whole source object.

        With ``dto=`` the field is added by :meth:`to_dto` (and dropped by
        :meth:`to_entity`); with ``entity=`` it is added by :meth:`to_entity`.
        """
        if dto is None and entity is None:
            raise ValueError("Computed field needs a dto or an entity field")
        replacement = self
        if dto is not None:
            kept = tuple(c for c in self.computed_dto if c[0] != dto)
            replacement = dataclasses.replace(replacement, computed_dto=kept + ((dto, value),))
        if entity is not None:
            kept = tuple(c for c in self.computed_entity if c[0] != entity)
            replacement = dataclasses.replace(replacement, computed_entity=kept + ((entity, value),))
        return replacement

    def ignore(self, *fields: str) -> FieldMapper:
        return dataclasses.replace(self, ignored=self.ignored | frozenset(fields))

    # -- mapping --

    def to_dto(self, entity: Any) -> Any:
        if not entity:
            return entity
        by_entity = {m.entity_field: m for m in self.mappings}
        result: dict[str, Any] = {}
        for key, value in entity.items():
            if key in self.ignored:
                continue
            mapping = by_entity.get(key)
            if mapping is None:
                result[key] = value
            else:
                result[mapping.dto_field] = mapping.to_dto(value, entity) if mapping.to_dto else value
        for field_name, compute in self.computed_dto:
            result[field_name] = compute(entity)
        return result

    def to_entity(self, dto: Any) -> Any:
        if not dto:
            return dto
        by_dto = {m.dto_field: m for m in self.mappings}
        computed = {name for name, _ in self.computed_dto}
        result: dict[str, Any] = {}
        for key, value in dto.items():
            if key in computed or key in self.ignored:
                continue
            mapping = by_dto.get(key)
            if mapping is None:
                result[key] = value
            else:
                result[mapping.entity_field] = mapping.to_entity(value, dto) if mapping.to_entity else value
        for field_name, compute in self.computed_entity:
            result[field_name] = compute(dto)
        return result

    def to_dto_list(self, entities: Any) -> list[Any]:
        if not entities:
            return []
        return [self.to_dto(e) for e in entities]

    def to_entity_list(self, dtos: Any) -> list[Any]:
        if not dtos:
            return []
        return [self.to_entity(d) for d in dtos]
