"""
Prompt construction for expanding a source note into document fields
"""

import json
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel

from content_bridge.models import FieldCatalog, SchemaField


@dataclass
class SourceNote:
    """A free-form note from the source workspace"""
    subject: str
    content: str
    page_id: Optional[str] = None


class GenerationInstructions(BaseModel):
    """Optional user-provided guidance appended to every prompt"""
    general: Optional[str] = None
    tone: Optional[str] = None
    fields: Optional[str] = None


class PromptBuilder:
    """Builds the structured generation prompt"""

    @staticmethod
    def _field_line(field: SchemaField) -> str:
        purpose = field.purpose or "Generate appropriate content"
        return f"- {field.title or field.name} [{field.path}] ({field.type}): {purpose}"

    @staticmethod
    def _custom_instructions(instructions: Optional[GenerationInstructions]) -> str:
        if instructions is None:
            return ""

        sections: List[str] = []
        if instructions.general:
            sections.append(f"GENERAL INSTRUCTIONS:\n{instructions.general}")
        if instructions.tone:
            sections.append(f"TONE & STYLE:\n{instructions.tone}")
        if instructions.fields:
            sections.append(f"FIELD-SPECIFIC INSTRUCTIONS:\n{instructions.fields}")
        if not sections:
            return ""
        return "\n\nCUSTOM INSTRUCTIONS:\n" + "\n\n".join(sections)

    @classmethod
    def build(cls, note: SourceNote, catalog: FieldCatalog, schema_type: str,
              instructions: Optional[GenerationInstructions] = None) -> str:
        enabled_fields = [field for field in catalog.fields() if field.enabled]
        field_instructions = "\n".join(cls._field_line(field) for field in enabled_fields)
        template = ",\n".join(f"  {json.dumps(field.name)}: \"generated_value\"" for field in enabled_fields)

        return f"""You are an expert content writer creating a comprehensive {schema_type} document for a content platform.

CONTENT BRIEF (TO BE EXPANDED):
Subject: {note.subject}
Brief/Outline: {note.content}

YOUR TASK:
The "Brief/Outline" above is a SHORT SUMMARY that you must EXPAND into a full, detailed, well-structured article.
Do NOT simply translate or paraphrase the brief. Use it as inspiration to write comprehensive, engaging content.

FIELDS TO GENERATE:
{field_instructions}{cls._custom_instructions(instructions)}

CONTENT REQUIREMENTS:
1. Expand the brief with detailed explanations, concrete examples and actionable takeaways
2. Structure long text with a clear introduction, headings (## for h2, ### for h3) and a conclusion
3. Use **bold**, *italic* and lists where appropriate, with clear paragraph breaks (\\n\\n)

LINK HANDLING:
- If the brief contains links [text](url), integrate them naturally and preserve the exact URLs

OUTPUT FORMAT:
- Return ONLY a valid JSON object with this exact structure:
{{
{template}
}}
- Escape all quotes, newlines, and special characters properly (use \\n for line breaks, \\" for quotes)
- Field names containing [] describe items of a list; to produce several items, put an index in the brackets, e.g. modules[0].quoteModule.quote

IMPORTANT FIELD TYPE RULES:
- For datetime/date fields: Use ISO 8601 format (YYYY-MM-DDTHH:MM:SSZ or YYYY-MM-DD)
- For number fields: Use valid numbers only
- Return ONLY the JSON object, no additional text

Generate the comprehensive content now:"""
