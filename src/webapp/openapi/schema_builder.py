from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from webapp.domain.types import (
    ArrayOf,
    EntityRef,
    Primitive,
    TypeSpec,
    UnionOf,
    parse_type_name,
    qualified_name,
)
from webapp.entities.mappable import EntityReflector

logger = logging.getLogger(__name__)

Schema = dict[str, Any]

DATE_TIME_EXAMPLE = "2026-01-18T10:30:00+00:00"

_DATE_TIME: Schema = {"type": "string", "format": "date-time", "example": DATE_TIME_EXAMPLE}

PRIMITIVE_SCHEMAS: dict[str, Schema] = {
    "int": {"type": "integer"},
    "integer": {"type": "integer"},
    "float": {"type": "number"},
    "double": {"type": "number"},
    "bool": {"type": "boolean"},
    "boolean": {"type": "boolean"},
    "str": {"type": "string"},
    "string": {"type": "string"},
    "array": {"type": "array", "items": {"type": "object"}},
    "list": {"type": "array", "items": {"type": "object"}},
    "object": {"type": "object"},
    "mixed": {"type": "object"},
    "dict": {"type": "object"},
    "Any": {"type": "object"},
    "DateTime": _DATE_TIME,
    "DateTimeImmutable": _DATE_TIME,
    "datetime": _DATE_TIME,
    "date": _DATE_TIME,
    "null": {"type": "object", "nullable": True},
    "None": {"type": "object", "nullable": True},
}


class InvalidEntityError(ValueError):
    """Raised when an entity schema is requested for something that is not a mapped entity."""


@dataclass
class SchemaCache:
    """Per-builder state: finished entity schemas, in-progress entities, component registry."""

    built: dict[str, Schema] = field(default_factory=dict)       # qualified name -> schema
    building: set[str] = field(default_factory=set)               # qualified names
    components: dict[str, Schema] = field(default_factory=dict)   # short name -> schema

    def clear(self) -> None:
        self.built.clear()
        self.building.clear()
        self.components.clear()


def _ref(schema_name: str) -> Schema:
    return {"$ref": f"#/components/schemas/{schema_name}"}


def schema_name_for(qualified: str) -> str:
    """Short component name: last dotted segment (app.models.User -> User)."""
    return qualified.replace("\\", ".").rsplit(".", 1)[-1]


class SchemaBuilder:
    """
    Builds OpenAPI schema fragments from type names / TypeSpecs.

    Entity schemas are cached on this instance and registered as components by
    their short name; two entities sharing a short name overwrite each other.
    Use a fresh builder (or clear_cache()) per generation run.
    """

    def __init__(self, reflector: EntityReflector | None = None, cache: SchemaCache | None = None):
        self.reflector = reflector or EntityReflector()
        self.cache = cache or SchemaCache()

    # ----------------------------
    # Public API
    # ----------------------------

    def build_from_type_name(self, type_name: str, use_ref: bool = True) -> Schema:
        return self.build_from_spec(parse_type_name(type_name), use_ref=use_ref)

    def build_from_spec(self, spec: TypeSpec | None, use_ref: bool = True) -> Schema:
        if spec is None:
            return {"type": "object"}
        if isinstance(spec, ArrayOf):
            return self.build_array_schema(spec.item)
        if isinstance(spec, Primitive):
            return copy.deepcopy(PRIMITIVE_SCHEMAS.get(spec.name, {"type": "object"}))
        if isinstance(spec, UnionOf):
            return self._build_union(spec)
        if isinstance(spec, EntityRef):
            return self._build_complex(spec.name, use_ref=use_ref)
        # StatusMap is only meaningful at route level
        return {"type": "object"}

    def build_array_schema(self, item: TypeSpec | str) -> Schema:
        item_spec = parse_type_name(item) if isinstance(item, str) else item
        return {"type": "array", "items": self.build_from_spec(item_spec)}

    def build_from_entity(self, entity: str | type, use_ref: bool = True) -> Schema:
        """
        Schema for a mapped entity, registered as a component.

        Re-entering an entity that is still being built yields a ``$ref``, or
        ``{"type": "object"}`` when ``use_ref`` is false. Nested fields always
        ask for a reference, so only a direct re-entrant call gets the object.
        """
        name = qualified_name(entity) if isinstance(entity, type) else entity
        cls = self.reflector.resolve(name)
        if cls is None:
            raise InvalidEntityError(f"{name} must be a mapped entity (Mappable subclass)")

        qualified = qualified_name(cls)
        schema_name = schema_name_for(qualified)

        cached = self.cache.built.get(qualified)
        if cached is not None:
            self.cache.components.setdefault(schema_name, cached)
            logger.debug("schema cache hit: %s", qualified)
            return _ref(schema_name) if use_ref else copy.deepcopy(cached)

        if qualified in self.cache.building:
            logger.debug("schema cycle on %s, emitting reference", qualified)
            return _ref(schema_name) if use_ref else {"type": "object"}

        self.cache.building.add(qualified)
        try:
            schema = self._build_entity_schema(qualified)
        finally:
            self.cache.building.discard(qualified)

        self.cache.built[qualified] = schema
        self.cache.components[schema_name] = schema

        return _ref(schema_name) if use_ref else copy.deepcopy(schema)

    def get_component_schemas(self) -> dict[str, Schema]:
        return copy.deepcopy(self.cache.components)

    def clear_cache(self) -> None:
        self.cache.clear()

    # ----------------------------
    # Internals
    # ----------------------------

    def _build_complex(self, name: str, use_ref: bool = True) -> Schema:
        if self.reflector.is_entity(name):
            return self.build_from_entity(name, use_ref=use_ref)
        return {"type": "object"}

    def _build_union(self, spec: UnionOf) -> Schema:
        members = spec.non_null
        if not members:
            return {"type": "object", "nullable": True}

        if len(members) == 1:
            single = self.build_from_spec(members[0])
            if spec.allows_null:
                single["nullable"] = True
            return single

        schema: Schema = {"oneOf": [self.build_from_spec(m) for m in members]}
        if spec.allows_null:
            schema["nullable"] = True
        return schema

    def _build_entity_schema(self, qualified: str) -> Schema:
        properties: dict[str, Schema] = {}
        required: list[str] = []

        for f in self.reflector.fields(qualified):
            prop = self.build_from_spec(f.type)
            if f.description:
                prop["description"] = f.description
            properties[f.name] = prop
            if f.required:
                required.append(f.name)

        schema: Schema = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required

        description = self.reflector.class_description(qualified)
        if description:
            schema["description"] = description
        return schema
