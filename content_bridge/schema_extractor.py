"""
Declarative schema extraction.

Walks type definitions of the form::

    {"name": "post", "type": "document", "fields": [
        {"name": "title", "type": "string"},
        {"name": "modules", "type": "array", "of": [{"type": "quoteModule"}]},
    ]}

and records one SchemaField per path. Named member and field types are
resolved against the registry of all definitions. Descent stops at
references and at ``max_depth`` levels; deeper structure is truncated.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from content_bridge.config import config
from content_bridge.inference import TraverseContext
from content_bridge.models import (
    TITLE_SEPARATOR, FieldCatalog, FieldKind, SchemaField, SchemaType, format_segment_title,
)
from content_bridge.paths import array_path, join_path

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "document"


def get_type_name(type_ref: Any) -> str:
    if isinstance(type_ref, str) and type_ref:
        return type_ref
    if isinstance(type_ref, dict) and isinstance(type_ref.get("name"), str):
        return type_ref["name"]
    return "unknown"


def has_fields(definition: Any) -> bool:
    return isinstance(definition, dict) and isinstance(definition.get("fields"), list)


def member_type_name(member: Any) -> str:
    """Named members (``{"type": "object", "name": "cta"}``) use their name"""
    if isinstance(member, dict):
        if isinstance(member.get("name"), str) and member["name"]:
            return member["name"]
        return get_type_name(member.get("type"))
    return get_type_name(member)


class DeclarativeSchemaExtractor:
    """Builds field catalogs from declarative type definitions"""

    def __init__(self, type_definitions: Iterable[Dict[str, Any]], max_depth: Optional[int] = None):
        self.types: Dict[str, Dict[str, Any]] = {
            definition["name"]: definition
            for definition in type_definitions
            if isinstance(definition, dict) and isinstance(definition.get("name"), str)
        }
        self.max_depth = config.max_schema_depth if max_depth is None else max_depth

    def document_type_names(self) -> List[str]:
        return [
            name for name, definition in self.types.items()
            if definition.get("type") == DOCUMENT_TYPE and has_fields(definition)
        ]

    def extract(self, type_name: str) -> FieldCatalog:
        catalog = FieldCatalog(type_name)
        definition = self.types.get(type_name)
        if not has_fields(definition):
            logger.warning(f"No field definitions for type {type_name!r}")
            return catalog

        self._extract_fields(definition, catalog, TraverseContext(path=""), level=0)
        return catalog

    def extract_all(self) -> List[SchemaType]:
        return [
            self.extract(name).to_schema_type(title=self.types[name].get("title"))
            for name in self.document_type_names()
        ]

    def _resolve(self, source: Any, fallback_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Inline definition with fields, or a registered object type"""
        if has_fields(source):
            return source
        if fallback_name:
            resolved = self.types.get(fallback_name)
            if has_fields(resolved) and resolved.get("type") == FieldKind.OBJECT.value:
                return resolved
        return None

    def _extract_fields(self, definition: Dict[str, Any], catalog: FieldCatalog,
                        scope: TraverseContext, level: int) -> None:
        if level > self.max_depth:
            logger.debug(f"Depth limit {self.max_depth} reached under {scope.path!r}, truncating")
            return

        for field_def in definition.get("fields") or []:
            name = field_def.get("name") if isinstance(field_def, dict) else None
            if not name:
                continue

            path = join_path(scope.path, name)
            type_name = get_type_name(field_def.get("type"))
            title_parts = scope.title_parts + [field_def.get("title") or format_segment_title(name)]

            catalog.add(SchemaField(
                path=path,
                type=type_name,
                title=TITLE_SEPARATOR.join(title_parts),
                parent_path=scope.parent_path,
                module_type=scope.module_type,
                is_array_item=scope.is_array_item,
                description=field_def.get("description"),
            ))

            # references are opaque pointers
            if type_name == FieldKind.REFERENCE.value:
                continue

            field_scope = TraverseContext(
                path=path,
                title_parts=title_parts,
                parent_path=path,
                module_type=scope.module_type,
                is_array_item=scope.is_array_item,
            )

            if type_name == FieldKind.ARRAY.value:
                self._extract_array_members(field_def, catalog, field_scope, level)
                continue

            if type_name == FieldKind.OBJECT.value:
                nested = self._resolve(field_def)
            else:
                nested = self._resolve(None, type_name)
            if nested:
                self._extract_fields(nested, catalog, field_scope, level + 1)

    def _extract_array_members(self, field_def: Dict[str, Any], catalog: FieldCatalog,
                               scope: TraverseContext, level: int) -> None:
        members = field_def.get("of")
        if not isinstance(members, list):
            return

        for member in members:
            member_type = member_type_name(member)
            member_def = self._resolve(member, member_type)
            if member_def is None:
                continue

            module_type = member_type if member_type != FieldKind.OBJECT.value else None
            title_parts = list(scope.title_parts)
            if module_type:
                title_parts.append(format_segment_title(module_type))

            self._extract_fields(member_def, catalog, TraverseContext(
                path=array_path(scope.path, module_type),
                title_parts=title_parts,
                parent_path=scope.path,
                module_type=module_type,
                is_array_item=True,
            ), level + 1)
