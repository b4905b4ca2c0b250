import asyncio

import pytest

from content_bridge.catalog_service import InMemorySchemaSource
from content_bridge.demo import (
    DEMO_ENABLED_FIELDS, MOCK_RESPONSE, SAMPLE_DOCUMENTS, SAMPLE_NOTE, TYPE_DEFINITIONS,
)
from content_bridge.errors import MissingFieldsError, ParseError
from content_bridge.llm import MockLLM
from content_bridge.main import ContentGenerationSystem


def make_system(response, key_generator):
    source = InMemorySchemaSource(SAMPLE_DOCUMENTS, TYPE_DEFINITIONS)
    return ContentGenerationSystem(source, MockLLM(response), key_generator)


def test_schema_types(key_generator):
    system = make_system(MOCK_RESPONSE, key_generator)
    assert [schema_type.name for schema_type in system.get_schema_types()] == ["post", "author"]
    assert "modules[].quoteModule.quote" in system.get_fields("post")


def test_generate_post(key_generator):
    system = make_system(MOCK_RESPONSE, key_generator)
    result = asyncio.run(system.generate(SAMPLE_NOTE, "post", enabled=DEMO_ENABLED_FIELDS))
    document = result.document

    assert document["title"] == "Balcony Composting: A Practical Guide"
    assert document["slug"] == {"_type": "slug", "current": "balcony-composting-a-practical-guide"}
    assert document["publishedAt"] == "2024-05-01T10:30:00.000Z"
    assert document["seo"]["metaTitle"] == "Balcony Composting Guide"
    assert document["tags"] == ["composting", "urban gardening"]
    assert "[1]" not in document["excerpt"]

    assert [module["_type"] for module in document["modules"]] == ["heroModule", "quoteModule"]
    assert document["modules"][1]["author"] == "Kate Krebs"
    assert all(module["_key"] for module in document["modules"])

    body = document["body"]
    assert body[0]["style"] == "h2"
    assert any(block.get("listItem") == "bullet" for block in body)
    assert any(block.get("markDefs") for block in body)

    assert result.unmatched == {"readingTime": 4}
    assert result.warnings == []
    assert result.tokens_used > 0
    assert result.processing_metadata["parse_stage"] == 2


def test_prompt_reaches_provider(key_generator):
    system = make_system(MOCK_RESPONSE, key_generator)
    asyncio.run(system.generate(SAMPLE_NOTE, "post", enabled=DEMO_ENABLED_FIELDS))

    prompt = system.llm.prompts[0]
    assert "Subject: Balcony composting" in prompt
    assert '"seo.metaTitle": "generated_value"' in prompt
    assert '"author"' not in prompt


def test_missing_fields_abort(key_generator):
    system = make_system('{"title": "Only"}', key_generator)
    with pytest.raises(MissingFieldsError) as excinfo:
        asyncio.run(system.generate(SAMPLE_NOTE, "post", enabled=["title", "excerpt"]))
    assert excinfo.value.missing_fields == ["excerpt"]


def test_unparseable_response_aborts(key_generator):
    system = make_system("Sorry, I cannot help with that.", key_generator)
    with pytest.raises(ParseError):
        asyncio.run(system.generate(SAMPLE_NOTE, "post"))


def test_date_warnings_are_reported(key_generator):
    system = make_system('{"title": "T", "publishedAt": "whenever"}', key_generator)
    result = asyncio.run(system.generate(SAMPLE_NOTE, "post", enabled=["title", "publishedAt"]))

    assert result.document["publishedAt"] is None
    assert len(result.warnings) == 1
    assert "whenever" in result.warnings[0]
