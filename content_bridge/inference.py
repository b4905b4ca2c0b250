"""
Sample-based field catalog inference.

Walks example documents structurally and records one SchemaField per
addressable path. Used when no declarative schema is available.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from content_bridge.models import (
    TITLE_SEPARATOR, TYPE_KEY, FieldCatalog, FieldKind, SchemaField, SchemaType,
    ValueShape, classify_value, format_segment_title, is_reserved_key,
)
from content_bridge.paths import array_path, join_path

logger = logging.getLogger(__name__)

BLOCK_TYPE = "block"
# Rich-text internals, never user content
RICH_TEXT_MARKERS = frozenset({"block", "span", "markDefs"})
BLOCK_INTERNAL_KEYS = frozenset({"children", "markDefs"})


@dataclass
class TraverseContext:
    """Where the prober currently is in a sample document"""
    path: str
    title_parts: List[str] = field(default_factory=list)
    parent_path: Optional[str] = None
    module_type: Optional[str] = None
    is_array_item: bool = False

    def child(self, key: str) -> "TraverseContext":
        return TraverseContext(
            path=join_path(self.path, key),
            title_parts=self.title_parts + [format_segment_title(key)],
            parent_path=self.path,
            module_type=self.module_type,
            is_array_item=self.is_array_item,
        )


def is_block_array(value: Any) -> bool:
    """True for a non-empty list made only of ``block`` objects"""
    if not isinstance(value, list) or not value:
        return False
    return all(isinstance(item, dict) and item.get(TYPE_KEY) == BLOCK_TYPE for item in value)


def infer_value_type(value: Any) -> str:
    shape = classify_value(value)
    if shape is ValueShape.ARRAY:
        return FieldKind.BLOCK_CONTENT.value if is_block_array(value) else FieldKind.ARRAY.value
    if shape is ValueShape.TAGGED_OBJECT:
        type_name = value[TYPE_KEY]
        return FieldKind.BLOCK_CONTENT.value if type_name == BLOCK_TYPE else type_name
    if shape is ValueShape.PLAIN_OBJECT:
        return FieldKind.OBJECT.value
    if isinstance(value, bool):
        return FieldKind.BOOLEAN.value
    if isinstance(value, (int, float)):
        return FieldKind.NUMBER.value
    return FieldKind.STRING.value


def merge_fields(existing: Iterable[SchemaField], incoming: Iterable[SchemaField]) -> List[SchemaField]:
    """Union by path; the earliest definition of a path wins"""
    merged: Dict[str, SchemaField] = {item.path: item for item in existing}
    for item in incoming:
        kept = merged.setdefault(item.path, item)
        if kept is not item and kept.type != item.type:
            logger.debug(f"Keeping type {kept.type!r} for {item.path!r}, ignoring {item.type!r}")
    return list(merged.values())


class SampleFieldProber:
    """Infers a field catalog from sample documents"""

    def __init__(self, skip_module_types: Iterable[str] = RICH_TEXT_MARKERS):
        self.skip_module_types = frozenset(skip_module_types)

    def probe(self, document: Dict[str, Any]) -> List[SchemaField]:
        """Fields of one document, parents before children"""
        if not isinstance(document, dict):
            return []

        catalog = FieldCatalog(document.get(TYPE_KEY, ""))
        for key, value in document.items():
            if is_reserved_key(key):
                continue
            self._visit(value, TraverseContext(key, [format_segment_title(key)]), catalog)
        return catalog.fields()

    def probe_many(self, documents: Iterable[Dict[str, Any]], type_name: str = "") -> FieldCatalog:
        merged: List[SchemaField] = []
        for document in documents:
            merged = merge_fields(merged, self.probe(document))
        return FieldCatalog(type_name, merged)

    def _visit(self, value: Any, context: TraverseContext, catalog: FieldCatalog) -> None:
        field_type = infer_value_type(value)
        try:
            catalog.add(SchemaField(
                path=context.path,
                type=field_type,
                title=TITLE_SEPARATOR.join(context.title_parts),
                parent_path=context.parent_path,
                module_type=context.module_type,
                is_array_item=context.is_array_item,
            ))
        except ValueError as e:
            # the rest of the sample is still usable
            logger.warning(f"Skipping sample field {context.path!r}: {e}")
            return

        shape = classify_value(value)
        if shape is ValueShape.ARRAY:
            if field_type != FieldKind.BLOCK_CONTENT.value:
                self._visit_array(value, context, catalog)
        elif shape is ValueShape.PLAIN_OBJECT:
            self._visit_children(value, context, catalog)
        elif shape is ValueShape.TAGGED_OBJECT and FieldKind.from_type_name(field_type) is None:
            # duck-typed module object
            self._visit_children(value, context, catalog)

    def _visit_children(self, value: Dict[str, Any], context: TraverseContext,
                        catalog: FieldCatalog) -> None:
        for key, child in value.items():
            if is_reserved_key(key):
                continue
            self._visit(child, context.child(key), catalog)

    def _visit_array(self, items: List[Any], context: TraverseContext, catalog: FieldCatalog) -> None:
        groups: Dict[Optional[str], List[Dict[str, Any]]] = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            module_type = item.get(TYPE_KEY)
            groups.setdefault(module_type if isinstance(module_type, str) else None, []).append(item)

        for module_type, group in groups.items():
            if module_type in self.skip_module_types:
                continue

            for child_key in self._union_child_keys(module_type, group):
                sample = next((item[child_key] for item in group if child_key in item), None)
                title_parts = list(context.title_parts)
                if module_type:
                    title_parts.append(format_segment_title(module_type))
                title_parts.append(format_segment_title(child_key))

                self._visit(sample, TraverseContext(
                    path=join_path(array_path(context.path, module_type), child_key),
                    title_parts=title_parts,
                    parent_path=context.path,
                    module_type=module_type,
                    is_array_item=True,
                ), catalog)

    @staticmethod
    def _union_child_keys(module_type: Optional[str], group: List[Dict[str, Any]]) -> List[str]:
        keys: Dict[str, None] = {}
        for item in group:
            for key in item:
                if is_reserved_key(key):
                    continue
                if module_type == BLOCK_TYPE and key in BLOCK_INTERNAL_KEYS:
                    continue
                keys.setdefault(key)
        return list(keys)


def infer_schema_types(documents: Iterable[Dict[str, Any]],
                       prober: Optional[SampleFieldProber] = None) -> List[SchemaType]:
    """One SchemaType per ``_type`` found among the documents"""
    prober = prober or SampleFieldProber()
    fields_by_type: Dict[str, List[SchemaField]] = {}

    for document in documents:
        if not isinstance(document, dict) or not isinstance(document.get(TYPE_KEY), str):
            continue
        type_name = document[TYPE_KEY]
        fields_by_type[type_name] = merge_fields(fields_by_type.get(type_name, []), prober.probe(document))

    return [
        FieldCatalog(type_name, fields).to_schema_type()
        for type_name, fields in fields_by_type.items()
    ]
