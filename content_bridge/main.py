#!/usr/bin/env python3
"""
Content Bridge - notes in, structured documents out

Pipeline for one generation request:
- field catalog inference from the target platform's schema or samples
- prompt construction and a call to the generative provider
- staged parsing and repair of the provider's JSON
- per-field normalization (dates, markdown, rich text)
- reconstruction of the nested, keyed document

Usage:
    python -m content_bridge.main
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from content_bridge.catalog_service import CatalogService, SchemaSource
from content_bridge.config import config
from content_bridge.llm import LLMInterface
from content_bridge.models import FieldCatalog, KeyGenerator, SchemaType, generate_key
from content_bridge.normalizer import FieldNormalizer
from content_bridge.prompt_builder import GenerationInstructions, PromptBuilder, SourceNote
from content_bridge.reconstruction import ContentReconstructor
from content_bridge.response_parser import ResponseParser

console = Console()
logger = logging.getLogger(__name__)

# =============================================================================
# Results
# =============================================================================

@dataclass
class GenerationResult:
    """Outcome of one note-to-document generation"""
    document: Dict[str, Any]
    raw_response: str
    unmatched: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    tokens_used: int = 0
    processing_metadata: Dict[str, Any] = field(default_factory=dict)

# =============================================================================
# Main Application
# =============================================================================

class ContentGenerationSystem:
    """Main system orchestrator"""

    def __init__(self, source: SchemaSource, llm: LLMInterface,
                 key_generator: KeyGenerator = generate_key):
        self.config = config
        self.source = source
        self.llm = llm
        self.key_generator = key_generator

    def _catalog_service(self) -> CatalogService:
        return CatalogService(self.source)

    def get_schema_types(self) -> List[SchemaType]:
        return self._catalog_service().get_schema_types()

    def get_fields(self, type_name: str) -> FieldCatalog:
        return self._catalog_service().get_fields(type_name)

    async def generate(self, note: SourceNote, type_name: str,
                       instructions: Optional[GenerationInstructions] = None,
                       enabled: Optional[Iterable[str]] = None,
                       purposes: Optional[Dict[str, str]] = None) -> GenerationResult:
        """Expand a note into a document of ``type_name``.

        Raises ParseError when the provider output cannot be recovered and
        MissingFieldsError when enabled fields are absent from it.
        """
        start_time = time.time()

        # Step 1: Resolve the field catalog
        console.print(f"[blue]Step 1: Resolving fields for {type_name!r}...[/blue]")
        catalog = self.get_fields(type_name).apply_selection(enabled, purposes)
        if not catalog:
            logger.warning(f"Empty field catalog for {type_name!r}")

        # Step 2: Prompt the provider
        console.print("[blue]Step 2: Generating content...[/blue]")
        prompt = PromptBuilder.build(note, catalog, type_name, instructions)
        raw_response = await asyncio.to_thread(self.llm.generate, prompt)
        tokens_used = self.llm.get_token_count(prompt) + self.llm.get_token_count(raw_response)

        # Step 3: Parse, repair and validate
        console.print("[blue]Step 3: Parsing response...[/blue]")
        parser = ResponseParser(catalog)
        parsed = parser.parse_staged(raw_response)
        value_map = parser.validate(parsed.value_map)

        # Step 4: Normalize field values
        console.print("[blue]Step 4: Normalizing fields...[/blue]")
        normalizer = FieldNormalizer(catalog, self.key_generator)
        normalized = await normalizer.normalize(value_map)

        # Step 5: Rebuild the document
        console.print("[blue]Step 5: Reconstructing document...[/blue]")
        reconstructor = ContentReconstructor(catalog, self.key_generator)
        document = reconstructor.reconstruct(normalized)

        return GenerationResult(
            document=document,
            raw_response=raw_response,
            unmatched=reconstructor.unmatched,
            warnings=[str(warning) for warning in normalizer.warnings],
            tokens_used=tokens_used,
            processing_metadata={
                "type_name": type_name,
                "catalog_size": len(catalog),
                "parse_stage": parsed.stage,
                "processing_time": time.time() - start_time,
            },
        )

    def display_results(self, result: GenerationResult) -> None:
        """Display generation results in a formatted way"""
        console.print(Panel("[bold green]Generation Results[/bold green]"))

        table = Table(title="Generation Summary")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Document Fields", str(len(result.document)))
        table.add_row("Unmatched Keys", str(len(result.unmatched)))
        table.add_row("Warnings", str(len(result.warnings)))
        table.add_row("Tokens Used", str(result.tokens_used))
        table.add_row("Parse Stage", str(result.processing_metadata.get("parse_stage", "-")))

        console.print(table)

        if result.warnings:
            console.print(Panel("[red]Field warnings:[/red]\n" + "\n".join(result.warnings)))

        if result.unmatched:
            console.print(Panel("[yellow]Unmatched keys:[/yellow]\n" + "\n".join(sorted(result.unmatched))))

        console.print(Panel("[yellow]Document (preview):[/yellow]\n" +
                            json.dumps(result.document, indent=2)[:1000] + "..."))


def display_catalog(catalog: FieldCatalog) -> None:
    table = Table(title=f"Fields of {catalog.type_name!r}")
    table.add_column("Path", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Title", style="white")
    table.add_column("Virtual", style="yellow")

    for schema_field in catalog:
        table.add_row(schema_field.path, schema_field.type, schema_field.title,
                      "yes" if schema_field.is_virtual else "")
    console.print(table)


async def main():
    """Main execution function"""
    from content_bridge.catalog_service import InMemorySchemaSource
    from content_bridge.demo import (
        DEMO_ENABLED_FIELDS, MOCK_RESPONSE, SAMPLE_DOCUMENTS, SAMPLE_NOTE, TYPE_DEFINITIONS,
    )
    from content_bridge.llm import MockLLM, OpenAILLM

    source = InMemorySchemaSource(SAMPLE_DOCUMENTS, TYPE_DEFINITIONS)
    llm = OpenAILLM() if config.openai_api_key else MockLLM(MOCK_RESPONSE)
    system = ContentGenerationSystem(source, llm)

    try:
        display_catalog(system.get_fields("post"))
        result = await system.generate(SAMPLE_NOTE, "post", enabled=DEMO_ENABLED_FIELDS)
        system.display_results(result)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.exception("System error")


if __name__ == "__main__":
    logging.basicConfig(level=config.log_level)
    asyncio.run(main())
