"""
Conversion of markdown-flavoured strings into rich-text block content.

Each paragraph becomes a ``block`` with ``span`` children. Links become spans
marked with the key of a ``link`` annotation collected in ``markDefs``.
Headings and list lines start their own blocks.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from content_bridge.models import ITEM_KEY, TYPE_KEY, KeyGenerator, generate_key

INLINE_TOKEN_PATTERN = re.compile(r"(\[[^\]]+\]\([^)]+\)|\*\*[^*]+\*\*|\*[^*]+\*)")
LINK_PATTERN = re.compile(r"^\[([^\]]+)\]\(([^)]+)\)$")
HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*)$")
BULLET_PATTERN = re.compile(r"^[-*]\s+(.*)$")
NUMBERED_PATTERN = re.compile(r"^\d+\.\s+(.*)$")


def _span(text: str, marks: List[str], key_generator: KeyGenerator) -> Dict[str, Any]:
    return {TYPE_KEY: "span", ITEM_KEY: key_generator(), "text": text, "marks": marks}


def parse_inline(text: str, key_generator: KeyGenerator = generate_key
                 ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Split one paragraph into spans and link annotations"""
    children: List[Dict[str, Any]] = []
    mark_defs: List[Dict[str, Any]] = []
    last_index = 0

    for match in INLINE_TOKEN_PATTERN.finditer(text):
        if match.start() > last_index:
            children.append(_span(text[last_index:match.start()], [], key_generator))

        token = match.group(0)
        link = LINK_PATTERN.match(token)
        if link:
            mark_key = key_generator()
            mark_defs.append({TYPE_KEY: "link", ITEM_KEY: mark_key, "href": link.group(2)})
            children.append(_span(link.group(1), [mark_key], key_generator))
        elif token.startswith("**"):
            children.append(_span(token[2:-2], ["strong"], key_generator))
        else:
            children.append(_span(token[1:-1], ["em"], key_generator))
        last_index = match.end()

    if last_index < len(text):
        children.append(_span(text[last_index:], [], key_generator))
    if not children:
        children.append(_span(text, [], key_generator))

    return children, mark_defs


def _block(text: str, key_generator: KeyGenerator, style: str = "normal",
           list_item: Optional[str] = None) -> Dict[str, Any]:
    children, mark_defs = parse_inline(text, key_generator)
    block: Dict[str, Any] = {TYPE_KEY: "block", ITEM_KEY: key_generator(), "style": style}
    if list_item:
        block["listItem"] = list_item
        block["level"] = 1
    if mark_defs:
        block["markDefs"] = mark_defs
    block["children"] = children
    return block


def convert_string_to_block_content(text: Any, key_generator: KeyGenerator = generate_key
                                    ) -> List[Dict[str, Any]]:
    """Blocks for a markdown string; anything but a non-empty string gives []"""
    if not isinstance(text, str):
        return []

    clean_text = text.replace("\r\n", "\n").strip()
    if not clean_text:
        return []

    blocks: List[Dict[str, Any]] = []
    buffer: List[str] = []

    def flush() -> None:
        if buffer:
            blocks.append(_block(" ".join(buffer), key_generator))
            buffer.clear()

    for line in clean_text.split("\n"):
        line = line.strip()
        if not line:
            flush()
            continue

        heading = HEADING_PATTERN.match(line)
        if heading:
            flush()
            blocks.append(_block(heading.group(2), key_generator, style=f"h{len(heading.group(1))}"))
            continue

        bullet = BULLET_PATTERN.match(line)
        numbered = NUMBERED_PATTERN.match(line)
        if bullet or numbered:
            flush()
            content = (bullet or numbered).group(1)
            blocks.append(_block(content, key_generator, list_item="bullet" if bullet else "number"))
            continue

        buffer.append(line)

    flush()
    return blocks
