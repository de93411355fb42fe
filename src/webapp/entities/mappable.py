from __future__ import annotations

import inspect
import logging
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from webapp.domain.types import TypeSpec, allows_null, qualified_name, type_spec_from_annotation

logger = logging.getLogger(__name__)

_ATTR_LINE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(?:\(([^)]*)\))?\s*:\s*(.*)$")


class Mappable(BaseModel):
    """
    Base class for mapped entities.

    Every subclass is recorded in a process-wide registry keyed by its dotted
    name, which is what ``EntityReflector`` consults by default.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    _registry: ClassVar[dict[str, type["Mappable"]]] = {}

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        Mappable._registry[qualified_name(cls)] = cls

    @classmethod
    def registered(cls) -> list[type["Mappable"]]:
        return list(Mappable._registry.values())

    @classmethod
    def reflection(cls) -> dict[str, TypeSpec]:
        """Ordered field name -> declared TypeSpec."""
        return {name: type_spec_from_annotation(f.annotation) for name, f in cls.model_fields.items()}

    def map(self, data: Any) -> "Mappable":
        """Copy matching keys from a row/dict/object onto this entity (unknown keys are ignored)."""
        if not isinstance(data, dict):
            data = vars(data)
        for key, value in data.items():
            if key in type(self).model_fields:
                setattr(self, key, value)
        return self


@dataclass(frozen=True)
class EntityField:
    name: str
    type: TypeSpec
    nullable: bool
    has_default: bool
    description: Optional[str] = None

    @property
    def required(self) -> bool:
        return not self.nullable and not self.has_default


def parse_attribute_docs(doc: str | None) -> dict[str, str]:
    """
    Read the ``Attributes:`` section of a Google-style class docstring:

        Attributes:
            id: Identifier.
            name (str): Display name,
                may continue on the next line.
    """
    if not doc:
        return {}

    out: dict[str, str] = {}
    in_section = False
    section_indent = 0
    entry_indent = 0
    current: str | None = None
    parts: list[str] = []

    def flush() -> None:
        if current is not None and parts:
            out[current] = " ".join(parts).strip()

    for raw in inspect.cleandoc(doc).splitlines():
        stripped = raw.strip()
        indent = len(raw) - len(raw.lstrip())

        if not in_section:
            if stripped in ("Attributes:", "Attributes"):
                in_section = True
                section_indent = indent
            continue

        if not stripped:
            continue
        if indent <= section_indent:
            # next section
            break

        m = _ATTR_LINE.match(stripped)
        if m and (current is None or indent <= entry_indent):
            flush()
            current = m.group(1)
            entry_indent = indent
            parts = [m.group(3)] if m.group(3) else []
        elif current is not None:
            parts.append(stripped)

    flush()
    return out


def first_doc_line(doc: str | None) -> str | None:
    if not doc:
        return None
    for line in inspect.cleandoc(doc).splitlines():
        line = line.strip()
        if line:
            return line
    return None


class EntityReflector:
    """
    Answers shape questions about mapped entities by name.

    Names can be dotted (``app.models.User``) or short (``User``). A short name
    shared by several entities resolves to the most recently registered one.
    """

    def __init__(self, entities: Iterable[type[Mappable]] | None = None):
        self._explicit = list(entities) if entities is not None else None

    def _entities(self) -> list[type[Mappable]]:
        if self._explicit is not None:
            return self._explicit
        return Mappable.registered()

    def resolve(self, name: str) -> type[Mappable] | None:
        name = (name or "").lstrip("\\").replace("\\", ".")
        if not name:
            return None
        by_short: type[Mappable] | None = None
        for cls in self._entities():
            if qualified_name(cls) == name:
                return cls
            if cls.__name__ == name:
                by_short = cls
        return by_short

    def is_entity(self, name: str) -> bool:
        return self.resolve(name) is not None

    def _require(self, name: str) -> type[Mappable]:
        cls = self.resolve(name)
        if cls is None:
            raise LookupError(f"{name} is not a mapped entity")
        return cls

    def qualified(self, name: str) -> str:
        return qualified_name(self._require(name))

    def reflect(self, name: str) -> dict[str, TypeSpec]:
        return self._require(name).reflection()

    def fields(self, name: str) -> list[EntityField]:
        cls = self._require(name)
        class_docs = parse_attribute_docs(cls.__doc__)
        out: list[EntityField] = []
        for field_name, info in cls.model_fields.items():
            spec = type_spec_from_annotation(info.annotation)
            out.append(
                EntityField(
                    name=field_name,
                    type=spec,
                    nullable=allows_null(spec),
                    has_default=not info.is_required(),
                    description=info.description or class_docs.get(field_name),
                )
            )
        logger.debug("reflected %s: %d fields", qualified_name(cls), len(out))
        return out

    def class_description(self, name: str) -> str | None:
        return first_doc_line(self._require(name).__doc__)
