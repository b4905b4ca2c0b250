from content_bridge.catalog_service import CatalogService, InMemorySchemaSource
from content_bridge.errors import CatalogInferenceFailure

TYPE_DEFINITIONS = [
    {
        "name": "post",
        "type": "document",
        "fields": [
            {"name": "title", "type": "string"},
            {"name": "body", "type": "blockContent"},
        ],
    },
]

DOCUMENTS = [
    {"_id": "post-1", "_type": "post", "title": "Sampled", "views": 3},
    {"_id": "page-1", "_type": "page", "title": "About", "hero": {"heading": "Hi"}},
    {"_id": "_.drafts.page-2", "_type": "page", "draftOnly": "yes"},
]


class UnavailableSource:
    def fetch_documents(self, type_name=None):
        raise CatalogInferenceFailure("workspace unavailable")

    def fetch_type_definitions(self):
        raise CatalogInferenceFailure("workspace unavailable")


def test_in_memory_source_filters_system_documents():
    source = InMemorySchemaSource(DOCUMENTS)
    assert [document["_id"] for document in source.fetch_documents()] == ["post-1", "page-1"]
    assert [document["_id"] for document in source.fetch_documents("page")] == ["page-1"]


def test_declarative_definitions_are_preferred():
    service = CatalogService(InMemorySchemaSource(DOCUMENTS, TYPE_DEFINITIONS))
    catalog = service.get_fields("post")
    assert [field.path for field in catalog] == ["body", "title"]


def test_samples_are_probed_without_definitions():
    service = CatalogService(InMemorySchemaSource(DOCUMENTS, TYPE_DEFINITIONS))
    catalog = service.get_fields("page")
    assert [field.path for field in catalog] == ["hero", "hero.heading", "title"]


def test_schema_types_fall_back_to_samples():
    declared = CatalogService(InMemorySchemaSource(DOCUMENTS, TYPE_DEFINITIONS)).get_schema_types()
    assert [schema_type.name for schema_type in declared] == ["post"]

    inferred = CatalogService(InMemorySchemaSource(DOCUMENTS)).get_schema_types()
    assert sorted(schema_type.name for schema_type in inferred) == ["page", "post"]


def test_unknown_type_gives_empty_catalog():
    catalog = CatalogService(InMemorySchemaSource(DOCUMENTS)).get_fields("event")
    assert catalog.type_name == "event"
    assert len(catalog) == 0


def test_source_failures_are_absorbed(caplog):
    service = CatalogService(UnavailableSource())
    assert service.get_schema_types() == []
    assert len(service.get_fields("post")) == 0
    assert "workspace unavailable" in caplog.text


def test_field_records():
    records = CatalogService(InMemorySchemaSource(DOCUMENTS)).get_field_records("page")
    heading = next(record for record in records if record["path"] == "hero.heading")
    assert heading["parentPath"] == "hero"
    assert heading["title"] == "Hero → Heading"
    assert heading["enabled"] is True


def test_malformed_sample_key_keeps_rest_of_catalog(caplog):
    documents = [{"_id": "post-9", "_type": "post", "title": "T", "foo[bar]": "x"}]
    catalog = CatalogService(InMemorySchemaSource(documents)).get_fields("post")
    assert [field.path for field in catalog] == ["title"]
    assert "foo[bar]" in caplog.text
