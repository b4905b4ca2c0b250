"""
Reconstruction of a nested document from a flat value map.

Top-level fields are taken from the map by path. Array fields collect their
items from item paths such as ``modules[].quoteModule.quote`` or
``modules[1].quoteModule.quote``; values without an index are grouped per
module type. Entries are removed from the map as they are matched, so what
is left afterwards is the unmatched remainder.
"""

import logging
import re
import unicodedata
from typing import Any, Callable, Dict, List, Optional, Tuple

from content_bridge.block_content import convert_string_to_block_content
from content_bridge.errors import InvalidFieldPathError
from content_bridge.models import (
    ITEM_KEY, TYPE_KEY, FieldCatalog, FieldKind, KeyGenerator, SchemaField, ValueShape,
    classify_value, ensure_item_key, generate_key, is_reserved_key,
)
from content_bridge.paths import match_indexed_path, plain_names

logger = logging.getLogger(__name__)

_MISSING = object()

# =============================================================================
# Value Conversion
# =============================================================================

def slugify(value: str) -> str:
    """``"Hello, World!  2024"`` -> ``"hello-world-2024"``"""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def _convert_slug(value: Any, key_generator: KeyGenerator) -> Any:
    if isinstance(value, str):
        return {TYPE_KEY: "slug", "current": slugify(value)}
    return value


def _convert_block_content(value: Any, key_generator: KeyGenerator) -> Any:
    if isinstance(value, str):
        return convert_string_to_block_content(value, key_generator)
    return value


def _pass_through(value: Any, key_generator: KeyGenerator) -> Any:
    return value


CONVERTERS: Dict[FieldKind, Callable[[Any, KeyGenerator], Any]] = {
    FieldKind.SLUG: _convert_slug,
    FieldKind.BLOCK_CONTENT: _convert_block_content,
    FieldKind.DATE: _pass_through,
    FieldKind.DATETIME: _pass_through,
}


def convert_value(value: Any, type_name: str, key_generator: KeyGenerator = generate_key) -> Any:
    """Apply the conversion registered for the field's kind"""
    if value is None:
        return None
    converter = CONVERTERS.get(FieldKind.from_type_name(type_name), _pass_through)
    return converter(value, key_generator)

# =============================================================================
# Item Repair and Keys
# =============================================================================

def auto_repair_item(item: Any) -> Any:
    """Unwrap ``{"quoteModule": {...}}`` into ``{"_type": "quoteModule", ...}``.

    Heuristic: a genuine single-field item holding a plain object is
    unwrapped too.
    """
    if not isinstance(item, dict):
        return item

    properties = [key for key in item if key != ITEM_KEY]
    if len(properties) != 1 or is_reserved_key(properties[0]):
        return item

    wrapper = properties[0]
    inner = item[wrapper]
    shape = classify_value(inner)
    if shape is ValueShape.PLAIN_OBJECT or (shape is ValueShape.TAGGED_OBJECT and inner[TYPE_KEY] == wrapper):
        repaired = {TYPE_KEY: wrapper}
        repaired.update((key, value) for key, value in inner.items() if key != TYPE_KEY)
        if ITEM_KEY in item:
            repaired[ITEM_KEY] = item[ITEM_KEY]
        logger.debug(f"Unwrapped array item wrapped in {wrapper!r}")
        return repaired
    return item


def ensure_keys_deep(value: Any, key_generator: KeyGenerator = generate_key) -> Any:
    """Key every object that sits inside an array, at any depth"""
    if isinstance(value, list):
        for element in value:
            ensure_item_key(element, key_generator)
            ensure_keys_deep(element, key_generator)
    elif isinstance(value, dict):
        for child in value.values():
            ensure_keys_deep(child, key_generator)
    return value

# =============================================================================
# Content Reconstructor
# =============================================================================

class ContentReconstructor:
    """Builds a nested document from a value map and a field catalog"""

    def __init__(self, catalog: FieldCatalog, key_generator: KeyGenerator = generate_key):
        self.catalog = catalog
        self.key_generator = key_generator
        self.unmatched: Dict[str, Any] = {}

    def reconstruct(self, value_map: Dict[str, Any]) -> Dict[str, Any]:
        """Consumes matched entries of ``value_map``"""
        document: Dict[str, Any] = {}
        conflicts: Dict[str, Any] = {}

        for field in self.catalog.top_level_fields():
            if field.kind is FieldKind.ARRAY:
                items = self._build_array(value_map, field)
                if items and not self._assign(document, field.path, items):
                    conflicts[field.path] = items
                continue

            if field.path in value_map:
                raw = value_map.pop(field.path)
                if not self._assign(document, field.path, convert_value(raw, field.type, self.key_generator)):
                    conflicts[field.path] = raw

        self.unmatched = {**value_map, **conflicts}
        if self.unmatched:
            logger.info(f"Unmatched keys after reconstruction: {sorted(self.unmatched)}")
        return ensure_keys_deep(document, self.key_generator)

    def _assign(self, document: Dict[str, Any], path: str, value: Any) -> bool:
        """Write ``seo.title`` as ``{"seo": {"title": ...}}``.

        Returns False, leaving the document untouched, when a parent segment
        already holds a non-object value.
        """
        try:
            names = plain_names(path)
        except InvalidFieldPathError:
            document[path] = value
            return True

        target = document
        for name in names[:-1]:
            child = target.get(name)
            if child is None:
                child = {}
                target[name] = child
            elif not isinstance(child, dict):
                logger.warning(f"Cannot write {path!r}: {name!r} already holds a {type(child).__name__}")
                return False
            target = child

        existing = target.get(names[-1])
        if isinstance(existing, dict) and isinstance(value, dict):
            existing.update(value)
        else:
            target[names[-1]] = dict(value) if isinstance(value, dict) else value
        return True

    def _finish_item(self, item: Any) -> Any:
        return ensure_item_key(auto_repair_item(item), self.key_generator)

    def _build_array(self, value_map: Dict[str, Any], field: SchemaField) -> List[Any]:
        direct = value_map.pop(field.path, _MISSING)
        if isinstance(direct, list):
            return [self._finish_item(item) for item in direct]

        nested_fields = self.catalog.nested_fields(field.path)
        if not nested_fields:
            if direct is _MISSING or direct is None:
                return []
            return [self._finish_item(direct)]

        if direct is not _MISSING:
            logger.debug(f"Ignoring non-array value for {field.path!r}; using item fields")

        drained = [
            (nested, value, index)
            for nested in nested_fields
            for value, index in self._drain_matches(value_map, nested.path)
        ]

        # unindexed values of a module share one slot after every indexed one
        next_slot = max((index + 1 for _, _, index in drained if index is not None), default=0)
        default_slots: Dict[Optional[str], int] = {}
        items: Dict[int, Dict[str, Any]] = {}

        for nested, value, index in drained:
            if index is None:
                if nested.module_type not in default_slots:
                    default_slots[nested.module_type] = next_slot
                    next_slot += 1
                slot = default_slots[nested.module_type]
            else:
                slot = index

            item = items.setdefault(slot, {})
            if nested.module_type and not item.get(TYPE_KEY):
                item[TYPE_KEY] = nested.module_type
            item[nested.leaf] = convert_value(value, nested.type, self.key_generator)

        return [self._finish_item(items[slot]) for slot in sorted(items)]

    @staticmethod
    def _drain_matches(value_map: Dict[str, Any], path: str) -> List[Tuple[Any, Optional[int]]]:
        """Pop the bare path, then every indexed key matching it"""
        matches: List[Tuple[Any, Optional[int]]] = []
        if path in value_map:
            matches.append((value_map.pop(path), None))

        for key in list(value_map):
            match = match_indexed_path(path, key)
            if match:
                matches.append((value_map.pop(key), match.index))
        return matches
