"""
Per-field cleanup of a validated value map.

Dates are canonicalised, free text is stripped of provider artefacts and
reformatted as markdown, and rich-text fields are turned into blocks.
A failure on one field is recorded as a warning and never aborts the map.
"""

import asyncio
import copy
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import mdformat
from dateutil import parser as dateutil_parser

from content_bridge.block_content import convert_string_to_block_content
from content_bridge.config import config
from content_bridge.errors import DateValidationWarning, FieldNormalizationWarning, InvalidFieldPathError
from content_bridge.inference import RICH_TEXT_MARKERS
from content_bridge.models import (
    DATE_KINDS, RICH_TEXT_KINDS, TYPE_KEY, FieldCatalog, FieldKind, KeyGenerator,
    ValueShape, classify_value, generate_key, is_reserved_key,
)
from content_bridge.paths import array_path, catalog_path, join_path

logger = logging.getLogger(__name__)

CITATION_PATTERN = re.compile(r"\[(\d+)\](?!\()")
SOURCE_ANNOTATION_PATTERN = re.compile(r"\(Source:\s*[^)]+\)", re.IGNORECASE)
INVISIBLE_CHARACTER_PATTERN = re.compile("[\u200b-\u200d\ufeff]")
TRAILING_SOURCES_PATTERN = re.compile(r"\n*(?:Sources|References|Citations):\n(?:\d+\.\s*.*\n?)+$", re.IGNORECASE)
EXCESS_BLANK_LINES_PATTERN = re.compile(r"\n{3,}")

# Two fill-in dates that differ in year, month and day
FIRST_DEFAULT = datetime(2000, 1, 1)
SECOND_DEFAULT = datetime(2001, 2, 2)

# Only trimmed, never reformatted as markdown
VERBATIM_KINDS = {FieldKind.SLUG, FieldKind.URL}

# =============================================================================
# Text Cleanup
# =============================================================================

def remove_citations(text: str) -> str:
    """Drop ``[1]`` markers (not ``[1](url)`` links), source notes,
    invisible characters and trailing reference lists"""
    cleaned = CITATION_PATTERN.sub("", text)
    cleaned = SOURCE_ANNOTATION_PATTERN.sub("", cleaned)
    cleaned = INVISIBLE_CHARACTER_PATTERN.sub("", cleaned)
    cleaned = TRAILING_SOURCES_PATTERN.sub("", cleaned)
    return cleaned


async def normalize_markdown(text: str) -> str:
    return await asyncio.to_thread(mdformat.text, text)


async def normalize_llm_output(raw: Any, reformat_markdown: bool = True) -> str:
    """Clean one piece of generated text"""
    if not isinstance(raw, str) or not raw:
        return ""

    cleaned = remove_citations(raw)
    if reformat_markdown:
        cleaned = await normalize_markdown(cleaned)
    cleaned = EXCESS_BLANK_LINES_PATTERN.sub("\n\n", cleaned)
    return cleaned.strip()


def _parse_complete(value: str) -> datetime:
    """Parse, refusing values whose year, month or day would be filled in"""
    parsed = dateutil_parser.parse(value, default=FIRST_DEFAULT)
    if parsed.date() != dateutil_parser.parse(value, default=SECOND_DEFAULT).date():
        raise ValueError(f"incomplete date {value!r}")
    return parsed


def normalize_date(value: str, kind: FieldKind) -> Optional[str]:
    """``YYYY-MM-DD`` for dates, UTC ISO 8601 for datetimes, None if unparseable"""
    try:
        parsed = _parse_complete(value)
        if kind is FieldKind.DATE:
            return parsed.date().isoformat()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    except (ValueError, OverflowError, TypeError):
        return None

# =============================================================================
# Field Normalizer
# =============================================================================

class FieldNormalizer:
    """Normalizes every entry of a value map according to its catalog type"""

    def __init__(self, catalog: FieldCatalog, key_generator: KeyGenerator = generate_key,
                 reformat_markdown: Optional[bool] = None, max_concurrency: Optional[int] = None):
        self.catalog = catalog
        self.key_generator = key_generator
        self.reformat_markdown = config.normalize_markdown if reformat_markdown is None else reformat_markdown
        self.max_concurrency = max_concurrency or config.max_concurrent_normalizations
        self.warnings: List[Warning] = []

    def _warn(self, warning: Warning) -> None:
        logger.warning(str(warning))
        self.warnings.append(warning)

    def _kind_for(self, path: Optional[str]) -> Optional[FieldKind]:
        if not path:
            return None
        return FieldKind.from_type_name(self.catalog.type_for(path))

    async def normalize(self, value_map: Dict[str, Any]) -> Dict[str, Any]:
        """Normalized copy of the map; fields are processed concurrently"""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def normalize_entry(key: str, value: Any):
            async with semaphore:
                return key, await self._normalize_value(key, copy.deepcopy(value))

        results = await asyncio.gather(*(normalize_entry(key, value) for key, value in value_map.items()))
        return dict(results)

    async def _normalize_value(self, path: Optional[str], value: Any) -> Any:
        shape = classify_value(value)
        if shape is ValueShape.SCALAR:
            if isinstance(value, str):
                return await self._normalize_string(path, value)
            return value
        if shape is ValueShape.ARRAY:
            return [await self._normalize_item(path, item) for item in value]
        if shape is ValueShape.TAGGED_OBJECT and value[TYPE_KEY] in RICH_TEXT_MARKERS:
            return value
        return await self._normalize_object(path, value)

    async def _normalize_item(self, array_field_path: Optional[str], item: Any) -> Any:
        # bare strings inside arrays are usually tags or ids, not prose
        if not isinstance(item, dict):
            return item

        item_path = None
        if array_field_path:
            module_type = item.get(TYPE_KEY) if classify_value(item) is ValueShape.TAGGED_OBJECT else None
            try:
                item_path = array_path(catalog_path(array_field_path), module_type)
            except InvalidFieldPathError:
                item_path = None
        return await self._normalize_value(item_path, item)

    async def _normalize_object(self, path: Optional[str], value: Dict[str, Any]) -> Dict[str, Any]:
        normalized = {}
        for key, child in value.items():
            if is_reserved_key(key):
                normalized[key] = child
                continue
            normalized[key] = await self._normalize_value(join_path(path, key), child)
        return normalized

    async def _normalize_string(self, path: Optional[str], value: str) -> Any:
        kind = self._kind_for(path)

        if kind in DATE_KINDS:
            normalized = normalize_date(value, kind)
            if normalized is None:
                self._warn(DateValidationWarning(path, value))
            return normalized

        if kind in VERBATIM_KINDS:
            return value.strip()

        try:
            cleaned = await normalize_llm_output(value, self.reformat_markdown)
        except Exception as e:
            self._warn(FieldNormalizationWarning(path or "", str(e)))
            return value

        if kind in RICH_TEXT_KINDS:
            return convert_string_to_block_content(cleaned, self.key_generator)
        return cleaned
