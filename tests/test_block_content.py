from content_bridge.block_content import convert_string_to_block_content, parse_inline


def texts(block):
    return [child["text"] for child in block["children"]]


def all_keys(blocks):
    keys = []
    for block in blocks:
        keys.append(block["_key"])
        keys.extend(child["_key"] for child in block["children"])
        keys.extend(mark["_key"] for mark in block.get("markDefs", []))
    return keys


def test_single_paragraph(key_generator):
    blocks = convert_string_to_block_content("Just one paragraph.", key_generator)

    assert len(blocks) == 1
    block = blocks[0]
    assert block["_type"] == "block"
    assert block["style"] == "normal"
    assert "markDefs" not in block
    assert block["children"] == [
        {"_type": "span", "_key": "key1", "text": "Just one paragraph.", "marks": []},
    ]
    assert block["_key"] == "key2"


def test_paragraphs_split_on_blank_lines(key_generator):
    blocks = convert_string_to_block_content("first line\nsecond line\n\n\nnext paragraph", key_generator)
    assert [texts(block) for block in blocks] == [["first line second line"], ["next paragraph"]]


def test_links_become_mark_definitions(key_generator):
    blocks = convert_string_to_block_content("See [the docs](https://example.com/docs) today", key_generator)

    block = blocks[0]
    assert texts(block) == ["See ", "the docs", " today"]
    mark_def = block["markDefs"][0]
    assert mark_def["_type"] == "link"
    assert mark_def["href"] == "https://example.com/docs"
    assert block["children"][1]["marks"] == [mark_def["_key"]]
    assert block["children"][0]["marks"] == []


def test_bold_and_italic(key_generator):
    children, mark_defs = parse_inline("**Bold** and *soft*", key_generator)
    assert [(child["text"], child["marks"]) for child in children] == [
        ("Bold", ["strong"]),
        (" and ", []),
        ("soft", ["em"]),
    ]
    assert mark_defs == []


def test_headings_and_lists(key_generator):
    text = "## Why\nBecause.\n\n- one\n* two\n1. first"
    blocks = convert_string_to_block_content(text, key_generator)

    assert [(block["style"], block.get("listItem")) for block in blocks] == [
        ("h2", None),
        ("normal", None),
        ("normal", "bullet"),
        ("normal", "bullet"),
        ("normal", "number"),
    ]
    assert texts(blocks[0]) == ["Why"]
    assert blocks[2]["level"] == 1
    assert "level" not in blocks[1]


def test_keys_are_unique(key_generator):
    blocks = convert_string_to_block_content("A [link](/a) and [another](/b)\n\nB **c**", key_generator)
    keys = all_keys(blocks)
    assert len(keys) == len(set(keys))


def test_non_string_and_blank_input():
    assert convert_string_to_block_content(None) == []
    assert convert_string_to_block_content(["a"]) == []
    assert convert_string_to_block_content("  \n\n ") == []
