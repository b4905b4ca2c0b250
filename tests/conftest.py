import itertools

import pytest

from content_bridge.models import FieldCatalog, SchemaField


@pytest.fixture
def key_generator():
    """Deterministic item keys: key1, key2, ..."""
    counter = itertools.count(1)
    return lambda: f"key{next(counter)}"


def make_catalog(*fields, type_name="post"):
    """Catalog from ``(path, type)`` or ``(path, type, extra)`` tuples"""
    catalog = FieldCatalog(type_name)
    for entry in fields:
        path, field_type = entry[0], entry[1]
        extra = entry[2] if len(entry) > 2 else {}
        catalog.add(SchemaField(path=path, type=field_type, **extra))
    return catalog


def item_field(array, module, leaf, field_type="string"):
    """Tuple for an array item field ``array[].module.leaf``"""
    path = f"{array}[].{module}.{leaf}" if module else f"{array}[].{leaf}"
    return (path, field_type, {"parent_path": array, "module_type": module, "is_array_item": True})
