import copy

import pytest

from content_bridge.reconstruction import (
    ContentReconstructor, auto_repair_item, convert_value, ensure_keys_deep, slugify,
)
from conftest import item_field, make_catalog


@pytest.fixture
def catalog():
    return make_catalog(
        ("body", "blockContent"),
        ("items", "array"),
        ("modules", "array"),
        item_field("modules", "heroModule", "headline"),
        item_field("modules", "quoteModule", "author"),
        item_field("modules", "quoteModule", "quote", "text"),
        ("publishedAt", "datetime"),
        ("seo", "object"),
        ("seo.metaTitle", "string", {"parent_path": "seo"}),
        ("slug", "slug"),
        ("tags", "array"),
        ("title", "string"),
    )


@pytest.fixture
def reconstructor(catalog, key_generator):
    return ContentReconstructor(catalog, key_generator)


def test_slugify():
    assert slugify("Hello, World!  2024") == "hello-world-2024"
    assert slugify("  Crème brûlée ") == "creme-brulee"
    assert slugify("---") == ""


def test_convert_value_table(key_generator):
    assert convert_value("Hello, World!  2024", "slug") == {"_type": "slug", "current": "hello-world-2024"}
    assert convert_value({"_type": "slug", "current": "kept"}, "slug") == {"_type": "slug", "current": "kept"}
    assert convert_value("2024-05-01", "datetime") == "2024-05-01"
    assert convert_value("plain", "quoteModule") == "plain"
    assert convert_value(None, "slug") is None
    blocks = convert_value("Text", "blockContent", key_generator)
    assert blocks[0]["_type"] == "block"


def test_quote_module_without_indices(reconstructor):
    document = reconstructor.reconstruct({
        "modules[].quoteModule.quote": "Be bold",
        "modules[].quoteModule.author": "Ada",
    })
    assert document == {
        "modules": [{"_type": "quoteModule", "author": "Ada", "quote": "Be bold", "_key": "key1"}],
    }


def test_indexed_items_keep_their_slots(reconstructor):
    document = reconstructor.reconstruct({
        "modules[1].quoteModule.quote": "Second",
        "modules[1].quoteModule.author": "Ada",
        "modules[0].heroModule.headline": "First",
        "modules[2].quoteModule.quote": "Third",
    })
    assert [(item["_type"], item.get("quote") or item.get("headline")) for item in document["modules"]] == [
        ("heroModule", "First"),
        ("quoteModule", "Second"),
        ("quoteModule", "Third"),
    ]
    assert document["modules"][1]["author"] == "Ada"


def test_unindexed_values_take_next_free_slot(reconstructor):
    document = reconstructor.reconstruct({
        "modules[0].heroModule.headline": "Hero",
        "modules[].quoteModule.quote": "Quote",
        "modules[].quoteModule.author": "Ada",
    })
    assert document["modules"] == [
        {"_type": "heroModule", "headline": "Hero", "_key": "key1"},
        {"_type": "quoteModule", "author": "Ada", "quote": "Quote", "_key": "key2"},
    ]


def test_unindexed_module_goes_after_indexed_slots(reconstructor):
    document = reconstructor.reconstruct({
        "modules[].heroModule.headline": "Hero",
        "modules[0].quoteModule.quote": "Quote",
    })
    assert document["modules"] == [
        {"_type": "quoteModule", "quote": "Quote", "_key": "key1"},
        {"_type": "heroModule", "headline": "Hero", "_key": "key2"},
    ]


def test_each_unindexed_module_gets_its_own_slot(reconstructor):
    document = reconstructor.reconstruct({
        "modules[].quoteModule.quote": "Quote",
        "modules[].heroModule.headline": "Hero",
        "modules[3].quoteModule.author": "Ada",
    })
    assert [(item["_type"], item.get("quote") or item.get("headline") or item.get("author"))
            for item in document["modules"]] == [
        ("quoteModule", "Ada"),
        ("heroModule", "Hero"),
        ("quoteModule", "Quote"),
    ]


def test_slug_conversion(reconstructor):
    document = reconstructor.reconstruct({"slug": "Hello, World!  2024"})
    assert document == {"slug": {"_type": "slug", "current": "hello-world-2024"}}


def test_nested_plain_paths(reconstructor):
    document = reconstructor.reconstruct({"seo.metaTitle": "Meta", "title": "T"})
    assert document == {"seo": {"metaTitle": "Meta"}, "title": "T"}


def test_object_and_nested_path_merge(reconstructor):
    document = reconstructor.reconstruct({"seo": {"noIndex": True}, "seo.metaTitle": "Meta"})
    assert document == {"seo": {"noIndex": True, "metaTitle": "Meta"}}


def test_block_content_string_is_converted(reconstructor):
    document = reconstructor.reconstruct({"body": "One\n\nTwo"})
    assert [block["style"] for block in document["body"]] == ["normal", "normal"]


def test_auto_repair_wrapped_module(reconstructor):
    document = reconstructor.reconstruct({
        "modules": [{"heroModule": {"headline": "X"}, "_key": "k1"}],
    })
    assert document["modules"] == [{"_type": "heroModule", "headline": "X", "_key": "k1"}]


def test_auto_repair_wrapped_tagged_module():
    repaired = auto_repair_item({"quoteModule": {"_type": "quoteModule", "quote": "Q"}})
    assert repaired == {"_type": "quoteModule", "quote": "Q"}


def test_auto_repair_leaves_regular_items():
    item = {"_type": "quoteModule", "quote": "Q"}
    assert auto_repair_item(item) is item
    assert auto_repair_item({"label": "text"}) == {"label": "text"}
    assert auto_repair_item({"a": {"x": 1}, "b": 2}) == {"a": {"x": 1}, "b": 2}
    assert auto_repair_item("tag") == "tag"


def test_auto_repair_false_positive(reconstructor):
    # a genuine single-field item holding an object is unwrapped too
    document = reconstructor.reconstruct({"items": [{"content": {"foo": "bar"}}]})
    assert document["items"] == [{"_type": "content", "foo": "bar", "_key": "key1"}]


def test_direct_list_is_used_verbatim(reconstructor):
    document = reconstructor.reconstruct({
        "modules": [{"_type": "quoteModule", "quote": "Q"}],
        "modules[].quoteModule.author": "Ignored",
    })
    assert document["modules"] == [{"_type": "quoteModule", "quote": "Q", "_key": "key1"}]
    assert reconstructor.unmatched == {"modules[].quoteModule.author": "Ignored"}


def test_scalar_is_wrapped_when_array_has_no_item_fields(reconstructor):
    assert reconstructor.reconstruct({"tags": "solo"}) == {"tags": ["solo"]}


def test_string_arrays_are_not_keyed(reconstructor):
    assert reconstructor.reconstruct({"tags": ["a", "b"]}) == {"tags": ["a", "b"]}


def test_empty_arrays_are_omitted(reconstructor):
    assert reconstructor.reconstruct({"title": "T"}) == {"title": "T"}


def test_unmatched_entries(reconstructor):
    value_map = {"title": "T", "readingTime": 4, "modules[0].galleryModule.images": []}
    reconstructor.reconstruct(value_map)

    assert reconstructor.unmatched == {"readingTime": 4, "modules[0].galleryModule.images": []}
    assert value_map == reconstructor.unmatched


def test_child_of_scalar_is_left_unmatched(key_generator):
    reconstructor = ContentReconstructor(
        make_catalog(("a", "string"), ("a.b", "string", {"parent_path": "a"})),
        key_generator,
    )
    document = reconstructor.reconstruct({"a": "kept", "a.b": "child"})

    assert document == {"a": "kept"}
    assert reconstructor.unmatched == {"a.b": "child"}


def test_ensure_keys_deep(key_generator):
    value = {"rows": [{"cells": [{"text": "a"}, {"text": "b", "_key": "own"}]}]}
    ensure_keys_deep(value, key_generator)

    row = value["rows"][0]
    assert row["_key"] == "key1"
    assert [cell["_key"] for cell in row["cells"]] == ["key2", "own"]


def test_round_trip_is_idempotent(catalog, key_generator):
    first = ContentReconstructor(catalog, key_generator).reconstruct({
        "title": "T",
        "slug": "My Post",
        "publishedAt": "2024-05-01T10:30:00.000Z",
        "body": "Intro\n\n- point",
        "seo.metaTitle": "Meta",
        "modules[].quoteModule.quote": "Be bold",
        "modules[1].heroModule.headline": "Hero",
        "tags": ["a"],
    })
    second_reconstructor = ContentReconstructor(catalog, key_generator)
    second = second_reconstructor.reconstruct(copy.deepcopy(first))

    assert second == first
    assert second_reconstructor.unmatched == {}
