"""
Core data models: field kinds, value shapes, schema fields and the field catalog
"""

import re
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from content_bridge.config import config
from content_bridge.errors import InvalidFieldPathError
from content_bridge.paths import catalog_path, leaf_name, parse_path

TYPE_KEY = "_type"
ITEM_KEY = "_key"
TITLE_SEPARATOR = " → "

KeyGenerator = Callable[[], str]

# =============================================================================
# Field Kinds and Value Shapes
# =============================================================================

class FieldKind(str, Enum):
    """Built-in field types. Any other type name is a custom module name."""
    STRING = "string"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    SLUG = "slug"
    IMAGE = "image"
    URL = "url"
    REFERENCE = "reference"
    OBJECT = "object"
    ARRAY = "array"
    BLOCK_CONTENT = "blockContent"

    @classmethod
    def from_type_name(cls, type_name: Optional[str]) -> Optional["FieldKind"]:
        """Return the built-in kind, or None for a custom module type"""
        try:
            return cls(type_name)
        except ValueError:
            return None


DATE_KINDS = {FieldKind.DATE, FieldKind.DATETIME}
RICH_TEXT_KINDS = {FieldKind.BLOCK_CONTENT, FieldKind.ARRAY}

JSON_SCHEMA_TYPES = {
    FieldKind.STRING: "string",
    FieldKind.TEXT: "string",
    FieldKind.NUMBER: "number",
    FieldKind.BOOLEAN: "boolean",
}


class ValueShape(Enum):
    """Shape of a document-shaped value"""
    SCALAR = "scalar"
    ARRAY = "array"
    TAGGED_OBJECT = "tagged_object"
    PLAIN_OBJECT = "plain_object"


def classify_value(value: Any) -> ValueShape:
    if isinstance(value, list):
        return ValueShape.ARRAY
    if isinstance(value, dict):
        if isinstance(value.get(TYPE_KEY), str):
            return ValueShape.TAGGED_OBJECT
        return ValueShape.PLAIN_OBJECT
    return ValueShape.SCALAR


def is_reserved_key(key: str) -> bool:
    """Internal/system keys (``_type``, ``_key``, ``_id`` ...)"""
    return key.startswith("_")

# =============================================================================
# Keys and Titles
# =============================================================================

def generate_key(length: Optional[int] = None) -> str:
    """Random item key; statistically unique only"""
    return uuid.uuid4().hex[:length or config.key_length]


def ensure_item_key(item: Any, key_generator: KeyGenerator = generate_key) -> Any:
    """Give an object array item a ``_key`` if it has none"""
    if isinstance(item, dict):
        key = item.get(ITEM_KEY)
        if not isinstance(key, str) or not key:
            item[ITEM_KEY] = key_generator()
    return item


def format_segment_title(value: str) -> str:
    """``quoteModule`` -> ``Quote Module``, ``meta_title`` -> ``Meta Title``"""
    value = value.replace("[]", "")
    value = re.sub(r"([A-Z])", r" \1", value)
    value = re.sub(r"[-_]", " ", value)
    return " ".join(word[:1].upper() + word[1:] for word in value.split())

# =============================================================================
# Schema Fields
# =============================================================================

class SchemaField(BaseModel):
    """One addressable field of a document type"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    path: str
    type: str
    title: str = ""
    parent_path: Optional[str] = None
    module_type: Optional[str] = None
    is_array_item: bool = False
    is_virtual: bool = False
    enabled: bool = True
    purpose: Optional[str] = None
    description: Optional[str] = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        parse_path(value)
        return value

    @model_validator(mode="after")
    def derive_defaults(self) -> "SchemaField":
        if not self.name:
            self.name = self.path
        if not self.title:
            self.title = format_segment_title(leaf_name(self.path))
        if self.is_array_item or "[]" in self.path:
            self.is_virtual = True
        return self

    @property
    def kind(self) -> Optional[FieldKind]:
        return FieldKind.from_type_name(self.type)

    @property
    def leaf(self) -> str:
        return leaf_name(self.path)

    def to_record(self) -> Dict[str, Any]:
        """Serialized form for a configuration UI"""
        return self.model_dump(by_alias=True, exclude_none=True)


class SchemaType(BaseModel):
    """A document type and its inferred fields"""
    name: str
    title: str
    fields: List[SchemaField] = Field(default_factory=list)

# =============================================================================
# Field Catalog
# =============================================================================

class FieldCatalog:
    """Fields of one document type keyed by path.

    Adding is first-seen-wins. A field's parent path must already be present,
    so catalogs are filled depth-first. Iteration is lexicographic by path.
    """

    def __init__(self, type_name: str = "", fields: Iterable[SchemaField] = ()):
        self.type_name = type_name
        self._fields: Dict[str, SchemaField] = {}
        self.merge(fields)

    def add(self, field: SchemaField) -> bool:
        """Insert a field; returns False when the path is already taken"""
        if field.path in self._fields:
            return False
        if field.parent_path and field.parent_path not in self._fields:
            raise ValueError(
                f"Parent path {field.parent_path!r} of {field.path!r} is not in the catalog"
            )
        self._fields[field.path] = field
        return True

    def merge(self, fields: Iterable[SchemaField]) -> "FieldCatalog":
        for field in fields:
            self.add(field)
        return self

    def __contains__(self, path: str) -> bool:
        return path in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[SchemaField]:
        return iter(self.fields())

    def get(self, path: str) -> Optional[SchemaField]:
        return self._fields.get(path)

    def fields(self) -> List[SchemaField]:
        return [self._fields[path] for path in sorted(self._fields)]

    def top_level_fields(self) -> List[SchemaField]:
        return [field for field in self.fields() if not field.is_array_item]

    def nested_fields(self, array_field_path: str) -> List[SchemaField]:
        """Item fields whose parent is the given array field"""
        return [
            field for field in self.fields()
            if field.parent_path == array_field_path and field.is_array_item
        ]

    def required_paths(self) -> List[str]:
        return [field.path for field in self.fields() if field.enabled and not field.is_virtual]

    def type_for(self, path: str) -> Optional[str]:
        """Catalog type of a bare or indexed value-map key"""
        field = self._fields.get(path)
        if field is None:
            try:
                field = self._fields.get(catalog_path(path))
            except InvalidFieldPathError:
                return None
        return field.type if field else None

    def apply_selection(self, enabled: Optional[Iterable[str]] = None,
                        purposes: Optional[Dict[str, str]] = None) -> "FieldCatalog":
        """Copy of the catalog with enabled flags and purposes applied"""
        enabled_paths = set(enabled) if enabled is not None else None
        purposes = purposes or {}
        selected = FieldCatalog(self.type_name)
        for field in self.fields():
            update: Dict[str, Any] = {}
            if enabled_paths is not None:
                update["enabled"] = field.path in enabled_paths
            if field.path in purposes:
                update["purpose"] = purposes[field.path]
            selected.add(field.model_copy(update=update))
        return selected

    def to_json_schema(self) -> Dict[str, Any]:
        """JSON Schema of the flat value map expected from the provider"""
        properties: Dict[str, Any] = {}
        for field in self.fields():
            if field.is_virtual:
                continue
            prop: Dict[str, Any] = {}
            json_type = JSON_SCHEMA_TYPES.get(field.kind)
            if json_type:
                prop["type"] = json_type
            if field.purpose:
                prop["description"] = field.purpose
            properties[field.path] = prop
        return {
            "type": "object",
            "properties": properties,
            "required": self.required_paths(),
        }

    def to_records(self) -> List[Dict[str, Any]]:
        return [field.to_record() for field in self.fields()]

    def to_schema_type(self, title: Optional[str] = None) -> SchemaType:
        return SchemaType(
            name=self.type_name,
            title=title or format_segment_title(self.type_name),
            fields=self.fields(),
        )
