#!/usr/bin/env python3
"""
Demo script showcasing the Content Bridge capabilities

This script demonstrates:
1. Field catalog extraction from declarative type definitions
2. Field catalog inference from sample documents
3. Note-to-document generation with response repair
4. Document reconstruction with keyed, typed array items
"""

import asyncio
import json
import logging
import time
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from content_bridge.catalog_service import InMemorySchemaSource
from content_bridge.config import config
from content_bridge.llm import MockLLM, OpenAILLM
from content_bridge.main import ContentGenerationSystem, display_catalog
from content_bridge.prompt_builder import GenerationInstructions, SourceNote

console = Console()

# =============================================================================
# Sample Documents and Type Definitions
# =============================================================================

TYPE_DEFINITIONS = [
    {
        "name": "post",
        "title": "Blog Post",
        "type": "document",
        "fields": [
            {"name": "title", "type": "string"},
            {"name": "slug", "type": "slug"},
            {"name": "publishedAt", "type": "datetime", "title": "Published at"},
            {"name": "excerpt", "type": "text"},
            {"name": "body", "type": "blockContent"},
            {"name": "author", "type": "reference", "to": [{"type": "author"}]},
            {"name": "seo", "type": "object", "fields": [
                {"name": "metaTitle", "type": "string"},
                {"name": "metaDescription", "type": "text"},
            ]},
            {"name": "modules", "type": "array", "of": [
                {"type": "quoteModule"},
                {"type": "heroModule"},
            ]},
            {"name": "tags", "type": "array", "of": [{"type": "string"}]},
        ],
    },
    {
        "name": "quoteModule",
        "type": "object",
        "fields": [
            {"name": "quote", "type": "text"},
            {"name": "author", "type": "string"},
        ],
    },
    {
        "name": "heroModule",
        "type": "object",
        "fields": [
            {"name": "heading", "type": "string"},
            {"name": "subheading", "type": "text"},
        ],
    },
    {
        "name": "author",
        "type": "document",
        "fields": [
            {"name": "name", "type": "string"},
            {"name": "bio", "type": "blockContent"},
        ],
    },
]

SAMPLE_DOCUMENTS = [
    {
        "_id": "post-1",
        "_type": "post",
        "title": "Composting in Small Spaces",
        "slug": {"_type": "slug", "current": "composting-in-small-spaces"},
        "publishedAt": "2024-03-02T09:00:00.000Z",
        "body": [
            {"_type": "block", "_key": "b1", "style": "normal",
             "children": [{"_type": "span", "_key": "s1", "text": "Start small.", "marks": []}]},
        ],
        "modules": [
            {"_type": "quoteModule", "_key": "m1", "quote": "Waste is a design flaw.", "author": "Kate Krebs"},
        ],
    },
    {
        "_id": "_.drafts.page-1",
        "_type": "page",
        "title": "Draft page",
    },
    {
        "_id": "page-1",
        "_type": "page",
        "title": "About",
        "hero": {"heading": "Who we are", "image": {"_type": "image", "asset": {"_ref": "image-1"}}},
        "sections": [
            {"_type": "textSection", "_key": "t1", "heading": "Mission", "body": "Grow food anywhere."},
            {"_type": "ctaSection", "_key": "c1", "label": "Join us", "url": "https://example.com/join"},
            {"_type": "textSection", "_key": "t2", "heading": "Team", "body": "Gardeners and engineers.",
             "footnote": "Since 2019"},
        ],
        "featured": True,
        "order": 2,
    },
]

SAMPLE_NOTE = SourceNote(
    subject="Balcony composting",
    content=(
        "Why compost on a balcony, choosing a bin (worm vs bokashi), what to feed it, "
        "common smells and how to fix them. Link: [city guide](https://example.com/compost-guide)"
    ),
    page_id="note-42",
)

DEMO_INSTRUCTIONS = GenerationInstructions(
    tone="Friendly and practical, second person.",
)

DEMO_ENABLED_FIELDS = [
    "title",
    "slug",
    "publishedAt",
    "excerpt",
    "body",
    "seo.metaTitle",
    "seo.metaDescription",
    "modules[].quoteModule.quote",
    "modules[].quoteModule.author",
    "modules[].heroModule.heading",
    "tags",
]

# The body literal carries raw newlines, as providers often emit
MOCK_RESPONSE = """Here is the generated content:

```json
{
  "title": "Balcony Composting: A Practical Guide",
  "slug": "Balcony Composting: A Practical Guide",
  "publishedAt": "2024-05-01 10:30",
  "excerpt": "Turn kitchen scraps into soil without a garden [1].",
  "body": "## Why compost on a balcony

Composting keeps scraps out of landfill and feeds your plants. See the [city guide](https://example.com/compost-guide).

## Choosing a bin

- Worm bins work well indoors
- Bokashi handles cooked food",
  "seo.metaTitle": "Balcony Composting Guide",
  "seo.metaDescription": "How to compost in a small apartment.",
  "modules[0].heroModule.heading": "Compost anywhere",
  "modules[1].quoteModule.quote": "Waste is a design flaw.",
  "modules[1].quoteModule.author": "Kate Krebs",
  "tags": ["composting", "urban gardening"],
  "readingTime": 4
}
```"""

# =============================================================================
# Demo Functions
# =============================================================================

def demo_declarative_catalog(system: ContentGenerationSystem):
    """Demo 1: Catalog from declarative type definitions"""
    console.print(Panel("[bold blue]Demo 1: Declarative Field Catalog[/bold blue]"))

    catalog = system.get_fields("post")
    display_catalog(catalog)
    console.print(f"[cyan]Schema types: {[schema_type.name for schema_type in system.get_schema_types()]}[/cyan]")
    return catalog


def demo_sample_catalog(system: ContentGenerationSystem):
    """Demo 2: Catalog inferred from sample documents"""
    console.print(Panel("[bold blue]Demo 2: Sample-Based Field Catalog[/bold blue]"))

    catalog = system.get_fields("page")
    display_catalog(catalog)
    return catalog


async def demo_generation(system: ContentGenerationSystem):
    """Demo 3: Note-to-document generation"""
    console.print(Panel("[bold blue]Demo 3: Note-to-Document Generation[/bold blue]"))

    start_time = time.time()
    result = await system.generate(SAMPLE_NOTE, "post", DEMO_INSTRUCTIONS, enabled=DEMO_ENABLED_FIELDS)
    processing_time = time.time() - start_time

    console.print(f"[green]✓ Generation completed in {processing_time:.2f} seconds[/green]")
    system.display_results(result)
    return result


def create_catalog_table(catalogs: list):
    """Compare the catalogs produced by both inference strategies"""
    table = Table(title="Catalog Comparison")

    table.add_column("Type", style="cyan")
    table.add_column("Fields", style="green")
    table.add_column("Required", style="yellow")
    table.add_column("Virtual", style="magenta")

    for catalog in catalogs:
        virtual = [schema_field for schema_field in catalog if schema_field.is_virtual]
        table.add_row(catalog.type_name, str(len(catalog)),
                      str(len(catalog.required_paths())), str(len(virtual)))
    return table


async def save_demo_results(result):
    """Save the generated document to a file"""
    output_dir = Path("demo_results")
    output_dir.mkdir(exist_ok=True)

    output_file = output_dir / "generated_post.json"
    with open(output_file, 'w') as f:
        json.dump({
            "document": result.document,
            "unmatched": result.unmatched,
            "warnings": result.warnings,
            "tokens_used": result.tokens_used,
            "processing_metadata": result.processing_metadata,
        }, f, indent=2, default=str)

    console.print(f"[green]✓ Results saved to {output_file}[/green]")


async def main():
    """Main demo execution"""
    console.print(Panel(
        "[bold green]Content Bridge - Demo[/bold green]\n\n"
        "This demo infers field catalogs and turns a short note into a structured post."
    ))

    if not config.openai_api_key:
        console.print(Panel(
            "[bold yellow]⚠ Warning: OPENAI_API_KEY not set[/bold yellow]\n\n"
            "The demo will use a canned provider response.\n"
            "For live generation, export OPENAI_API_KEY or add it to .env"
        ))

    llm = OpenAILLM() if config.openai_api_key else MockLLM(MOCK_RESPONSE)
    system = ContentGenerationSystem(InMemorySchemaSource(SAMPLE_DOCUMENTS, TYPE_DEFINITIONS), llm)

    try:
        post_catalog = demo_declarative_catalog(system)

        console.print("\n" + "="*80 + "\n")
        page_catalog = demo_sample_catalog(system)

        console.print("\n" + "="*80 + "\n")
        console.print(create_catalog_table([post_catalog, page_catalog]))

        console.print("\n" + "="*80 + "\n")
        result = await demo_generation(system)
        await save_demo_results(result)

    except Exception as e:
        console.print(f"[red]Demo failed with error: {e}[/red]")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=config.log_level)
    asyncio.run(main())
