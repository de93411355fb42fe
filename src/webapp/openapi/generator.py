from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from webapp.domain.models import GeneratorOptions
from webapp.entities.mappable import EntityReflector
from webapp.openapi.metadata import MetadataExtractor
from webapp.openapi.operation_builder import OperationBuilder
from webapp.openapi.path_converter import PathConverter
from webapp.openapi.schema_builder import SchemaBuilder
from webapp.routing.api import CompiledRoute

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.3"


def coerce_options(options: GeneratorOptions | Mapping[str, Any] | None) -> GeneratorOptions:
    if options is None:
        return GeneratorOptions()
    if isinstance(options, GeneratorOptions):
        return options
    return GeneratorOptions.model_validate(dict(options))


class OpenAPIGenerator:
    """
    Route table -> OpenAPI 3.0.3 document.

    Holds one SchemaBuilder (through its OperationBuilder); component schemas
    accumulate across generate() calls on the same instance, so build a new
    generator per document (``OpenAPIGenerator.create()``).
    """

    def __init__(
        self,
        path_converter: PathConverter,
        metadata_extractor: MetadataExtractor,
        operation_builder: OperationBuilder,
    ):
        self.path_converter = path_converter
        self.metadata_extractor = metadata_extractor
        self.operation_builder = operation_builder

    @classmethod
    def create(cls, reflector: EntityReflector | None = None, scan_source: bool = True) -> "OpenAPIGenerator":
        reflector = reflector or EntityReflector()
        return cls(
            PathConverter(),
            MetadataExtractor(reflector, scan_source=scan_source),
            OperationBuilder(SchemaBuilder(reflector)),
        )

    @property
    def schema_builder(self) -> SchemaBuilder:
        return self.operation_builder.schema_builder

    def generate(
        self,
        routes_by_method: Mapping[str, Iterable[CompiledRoute]],
        options: GeneratorOptions | Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        config = coerce_options(options)

        spec: dict[str, Any] = {
            "openapi": OPENAPI_VERSION,
            "info": {
                "title": config.title,
                "version": config.version,
                "description": config.description,
            },
            "servers": [s.model_dump() for s in config.servers],
            "paths": {},
        }

        count = 0
        for method, routes in routes_by_method.items():
            method_name = getattr(method, "value", method)
            for route in routes:
                converted = self.path_converter.convert(route.regex)
                metadata = self.metadata_extractor.extract(route.handler)
                operation = self.operation_builder.build(method_name, route, converted.parameters, metadata)

                spec["paths"].setdefault(converted.path, {})[str(method_name).lower()] = operation
                count += 1

        components = self.schema_builder.get_component_schemas()
        if components:
            spec["components"] = {"schemas": components}

        logger.info("generated OpenAPI document: %d operations, %d schemas", count, len(components))
        return spec
