"""
Recovery of a flat value map from generative provider output.

Providers wrap JSON in code fences, surround it with prose, and leave raw
control characters inside string literals. Parsing is staged; each stage
only runs when the previous one raised a decode error:

1. parse the text between the first ``{`` and the last ``}``
2. escape raw control characters in string literals that contain no
   escape sequences yet
3. escape raw control characters in every string literal, honouring
   escaped quotes and backslashes
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from jsonschema import Draft7Validator

from content_bridge.config import config
from content_bridge.errors import MissingFieldsError, ParseError
from content_bridge.models import FieldCatalog

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r"```[a-zA-Z]*\n?")
STRING_LITERAL_PATTERN = re.compile(r'"([^"\\]*(?:\\.[^"\\]*)*)"', re.DOTALL)
ESCAPE_AWARE_LITERAL_PATTERN = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)
CONTROL_CHARACTER_PATTERN = re.compile("[\n\r\t\f\b\v]")
ESCAPED_CONTROL_PATTERN = re.compile(r"\\[nrtfb]")

# JSON has no \v escape
CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\f": "\\f",
    "\b": "\\b",
    "\v": "\\u000b",
}


def escape_control_characters(content: str) -> str:
    return CONTROL_CHARACTER_PATTERN.sub(lambda match: CONTROL_ESCAPES[match.group(0)], content)


def escape_unescaped_literals(json_text: str) -> str:
    """Stage 2 repair: leaves literals with existing escape sequences alone"""
    def replace(match: "re.Match[str]") -> str:
        content = match.group(1)
        if not content or ESCAPED_CONTROL_PATTERN.search(content):
            return match.group(0)
        return f'"{escape_control_characters(content)}"'

    return STRING_LITERAL_PATTERN.sub(replace, json_text)


def escape_all_literals(json_text: str) -> str:
    """Stage 3 repair: every literal holding a raw control character"""
    def replace(match: "re.Match[str]") -> str:
        content = match.group(1)
        if not CONTROL_CHARACTER_PATTERN.search(content):
            return match.group(0)
        return f'"{escape_control_characters(content)}"'

    return ESCAPE_AWARE_LITERAL_PATTERN.sub(replace, json_text)


REPAIR_STAGES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("direct parse", lambda text: text),
    ("control character escaping", escape_unescaped_literals),
    ("escape-aware control character escaping", escape_all_literals),
)


@dataclass
class ParsedResponse:
    """Value map plus the 1-based stage that produced it"""
    value_map: Dict[str, Any]
    stage: int


class ResponseParser:
    """Parses provider output and checks it against the active catalog"""

    def __init__(self, catalog: Optional[FieldCatalog] = None, excerpt_length: Optional[int] = None):
        self.catalog = catalog
        self.excerpt_length = excerpt_length or config.diagnostic_excerpt_length

    def _excerpt(self, text: str) -> str:
        return text[:self.excerpt_length]

    def extract_json_text(self, response: str) -> str:
        """Strip code fences and keep the outermost braces"""
        cleaned = FENCE_PATTERN.sub("", response or "").strip()
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end < start:
            logger.error(f"No JSON object in response: {self._excerpt(response or '')!r}")
            raise ParseError(
                "No valid JSON found in response",
                original_excerpt=self._excerpt(response or ""),
            )
        return cleaned[start:end + 1]

    def parse_staged(self, response: str) -> ParsedResponse:
        json_text = self.extract_json_text(response)
        candidate = json_text
        last_error: Optional[json.JSONDecodeError] = None

        for stage, (description, repair) in enumerate(REPAIR_STAGES, start=1):
            candidate = repair(json_text)
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError as e:
                last_error = e
                logger.warning(f"Stage {stage} ({description}) failed: {e}")
                continue

            if not isinstance(parsed, dict):
                raise ParseError(
                    f"Expected a JSON object, got {type(parsed).__name__}",
                    original_excerpt=self._excerpt(response),
                    extracted_excerpt=self._excerpt(candidate),
                )
            if stage > 1:
                logger.info(f"Recovered JSON with {description}")
            return ParsedResponse(parsed, stage)

        logger.error("JSON parsing failed after all attempts")
        logger.error(f"Original response: {self._excerpt(response)!r}")
        logger.error(f"Extracted JSON: {self._excerpt(candidate)!r}")
        raise ParseError(
            f"Failed to parse LLM response: {last_error}",
            original_excerpt=self._excerpt(response),
            extracted_excerpt=self._excerpt(candidate),
        )

    def parse(self, response: str) -> Dict[str, Any]:
        return self.parse_staged(response).value_map

    def validate(self, value_map: Dict[str, Any]) -> Dict[str, Any]:
        """Require every enabled non-virtual field; type mismatches only warn"""
        if self.catalog is None:
            return value_map

        validator = Draft7Validator(self.catalog.to_json_schema())
        missing: Dict[str, None] = {}
        for error in validator.iter_errors(value_map):
            if error.validator == "required":
                for name in error.validator_value:
                    if name not in error.instance:
                        missing.setdefault(name)
            else:
                logger.warning(f"Schema validation warning at {error.json_path}: {error.message}")

        if missing:
            raise MissingFieldsError(list(missing))
        return value_map

    def parse_and_validate(self, response: str) -> Dict[str, Any]:
        return self.validate(self.parse(response))
