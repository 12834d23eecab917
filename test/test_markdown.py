"""
Tests for Notion block → markdown rendering
"""

from noxion.utils.markdown import blocks_to_markdown, render_rich_text
from utils.notion_fakes import make_paragraph, rich_text


def block(block_type, text="", **payload):
    return {"type": block_type, block_type: {"rich_text": rich_text(text) if text else [], **payload}}


class TestRenderRichText:
    def test_annotations(self):
        parts = [
            {"plain_text": "bold", "annotations": {"bold": True}},
            {"plain_text": " and "},
            {"plain_text": "code", "annotations": {"code": True}},
        ]
        assert render_rich_text(parts) == "**bold** and `code`"

    def test_link(self):
        parts = [{"plain_text": "site", "href": "https://example.com"}]
        assert render_rich_text(parts) == "[site](https://example.com)"

    def test_garbage(self):
        assert render_rich_text(None) == ""
        assert render_rich_text(["x", {"plain_text": 3}]) == ""


class TestBlocksToMarkdown:
    def test_paragraphs_separated_by_blank_line(self):
        markdown = blocks_to_markdown([make_paragraph("One"), make_paragraph("Two")])
        assert markdown == "One\n\nTwo"

    def test_headings(self):
        markdown = blocks_to_markdown([block("heading_1", "Title"), block("heading_3", "Small")])
        assert markdown == "# Title\n\n### Small"

    def test_list_items_stay_together(self):
        markdown = blocks_to_markdown(
            [
                block("bulleted_list_item", "a"),
                block("bulleted_list_item", "b"),
                make_paragraph("after"),
            ]
        )
        assert markdown == "- a\n- b\n\nafter"

    def test_numbered_list_counts(self):
        markdown = blocks_to_markdown([block("numbered_list_item", "x"), block("numbered_list_item", "y")])
        assert markdown == "1. x\n2. y"

    def test_to_do(self):
        markdown = blocks_to_markdown([block("to_do", "done", checked=True), block("to_do", "open", checked=False)])
        assert markdown == "- [x] done\n- [ ] open"

    def test_code_block(self):
        markdown = blocks_to_markdown([block("code", "print(1)", language="python")])
        assert markdown == "```python\nprint(1)\n```"

    def test_quote_and_divider(self):
        markdown = blocks_to_markdown([block("quote", "wise"), {"type": "divider", "divider": {}}])
        assert markdown == "> wise\n\n---"

    def test_image(self):
        image = {
            "type": "image",
            "image": {"type": "external", "external": {"url": "https://example.com/a.png"}, "caption": []},
        }
        assert blocks_to_markdown([image]) == "![](https://example.com/a.png)"

    def test_nested_list_children_are_indented(self):
        parent = block("bulleted_list_item", "parent")
        parent["children"] = [block("bulleted_list_item", "child")]
        assert blocks_to_markdown([parent]) == "- parent\n    - child"

    def test_unknown_and_empty_blocks_skipped(self):
        markdown = blocks_to_markdown([{"type": "unsupported"}, make_paragraph(""), "junk", make_paragraph("kept")])
        assert markdown == "kept"

    def test_not_a_list(self):
        assert blocks_to_markdown(None) == ""
