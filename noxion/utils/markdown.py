"""
Notion Blocks → Markdown

Flattens a Notion block tree into markdown text. Blocks are the objects
returned by the block children endpoint; nested children are expected under a
"children" key (the content client attaches them while walking the tree).
Unsupported block types are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

INDENT = "    "
LIST_TYPES = ("bulleted_list_item", "numbered_list_item", "to_do")


def render_rich_text(rich_text: Any) -> str:
    """Render a rich text array with bold/italic/strike/code/link annotations."""
    if not isinstance(rich_text, list):
        return ""

    parts: list[str] = []
    for item in rich_text:
        if not isinstance(item, Mapping):
            continue
        text = item.get("plain_text")
        if not isinstance(text, str) or not text:
            continue

        annotations = item.get("annotations") or {}
        if annotations.get("code"):
            text = f"`{text}`"
        if annotations.get("bold"):
            text = f"**{text}**"
        if annotations.get("italic"):
            text = f"_{text}_"
        if annotations.get("strikethrough"):
            text = f"~~{text}~~"

        href = item.get("href")
        if isinstance(href, str) and href:
            text = f"[{text}]({href})"
        parts.append(text)
    return "".join(parts)


def _file_url(payload: Mapping[str, Any]) -> str:
    source = payload.get("type")
    if source in ("external", "file"):
        inner = payload.get(source) or {}
        url = inner.get("url")
        return url if isinstance(url, str) else ""
    return ""


def _render_block(block: Mapping[str, Any], depth: int, number: int) -> list[str]:
    block_type = block.get("type")
    if not isinstance(block_type, str):
        return []
    payload = block.get(block_type)
    if not isinstance(payload, Mapping):
        payload = {}

    prefix = INDENT * depth
    text = render_rich_text(payload.get("rich_text"))
    lines: list[str]

    if block_type == "paragraph":
        lines = [prefix + text] if text else []
    elif block_type in ("heading_1", "heading_2", "heading_3"):
        lines = [f"{'#' * int(block_type[-1])} {text}"]
    elif block_type == "bulleted_list_item":
        lines = [f"{prefix}- {text}"]
    elif block_type == "numbered_list_item":
        lines = [f"{prefix}{number}. {text}"]
    elif block_type == "to_do":
        mark = "x" if payload.get("checked") else " "
        lines = [f"{prefix}- [{mark}] {text}"]
    elif block_type in ("quote", "callout"):
        icon = payload.get("icon") or {}
        emoji = icon.get("emoji") if isinstance(icon, Mapping) else None
        body = f"{emoji} {text}" if block_type == "callout" and emoji else text
        lines = [f"{prefix}> {line}" for line in body.splitlines() or [""]]
    elif block_type == "code":
        language = payload.get("language") or ""
        code = "".join(
            part.get("plain_text", "") for part in payload.get("rich_text") or [] if isinstance(part, Mapping)
        )
        lines = [f"```{language}", *code.splitlines(), "```"]
    elif block_type == "divider":
        lines = ["---"]
    elif block_type == "image":
        caption = render_rich_text(payload.get("caption"))
        url = _file_url(payload)
        lines = [f"![{caption}]({url})"] if url else []
    elif block_type in ("bookmark", "embed", "link_preview"):
        url = payload.get("url")
        caption = render_rich_text(payload.get("caption")) or url
        lines = [f"[{caption}]({url})"] if isinstance(url, str) and url else []
    elif block_type == "toggle":
        lines = [f"{prefix}<details><summary>{text}</summary>"]
        lines.extend(_render_children(block, depth))
        lines.append(f"{prefix}</details>")
        return lines
    else:
        lines = [prefix + text] if text else []

    lines.extend(_render_children(block, depth + 1 if block_type in LIST_TYPES else depth))
    return lines


def _render_children(block: Mapping[str, Any], depth: int) -> list[str]:
    children = block.get("children")
    if not isinstance(children, list) or not children:
        return []
    return render_blocks_to_lines(children, depth)


def render_blocks_to_lines(blocks: list[Any], depth: int = 0) -> list[str]:
    lines: list[str] = []
    number = 0
    last_was_list = False
    for block in blocks:
        if not isinstance(block, Mapping):
            continue
        number = number + 1 if block.get("type") == "numbered_list_item" else 0
        rendered = _render_block(block, depth, number)
        if not rendered:
            continue
        list_like = block.get("type") in LIST_TYPES
        # Consecutive list items stay in one list; everything else is its own paragraph
        if lines and not (list_like and last_was_list):
            lines.append("")
        lines.extend(rendered)
        last_was_list = list_like
    return lines


def blocks_to_markdown(blocks: list[Any]) -> str:
    """Render a block tree as a markdown string."""
    if not isinstance(blocks, list):
        return ""
    return "\n".join(render_blocks_to_lines(blocks)).strip()
