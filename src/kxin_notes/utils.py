"""Utility functions for the Kxin Notes store."""

import math
import re
from typing import Any, Dict, List, Union

# Characters Windows refuses in file names
_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE = re.compile(r"\s+")
_MARKUP_TAG = re.compile(r"<[^>]+>")

# CJK ideographs, kana and hangul count as one word each
_CJK_CHAR = re.compile(
    "[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af\uf900-\ufaff]"
)

MAX_FILENAME_TITLE_LENGTH = 50


def sanitize_filename(title: str, max_length: int = MAX_FILENAME_TITLE_LENGTH) -> str:
    """Make a note title usable as a file name fragment.

    Disallowed characters become underscores, runs of whitespace collapse to
    a single underscore, and the result is cut to ``max_length`` characters.

    Examples:
        "Meeting: Q3 plan" -> "Meeting__Q3_plan"
        "a/b  c" -> "a_b_c"
    """
    if not title:
        return ""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", title)
    cleaned = _WHITESPACE.sub("_", cleaned)
    return cleaned[:max_length]


def _item_text(items: Any) -> List[str]:
    """Text of list items, nested lists included (``{content, items}``)."""
    parts: List[str] = []
    if not isinstance(items, list):
        return parts
    for item in items:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, dict):
            if isinstance(item.get("content"), str):
                parts.append(item["content"])
            parts.extend(_item_text(item.get("items")))
    return parts


def _block_text(block: Dict[str, Any]) -> List[str]:
    data = block.get("data")
    if not isinstance(data, dict):
        return []
    parts: List[str] = []
    text = data.get("text")
    if isinstance(text, str):
        parts.append(text)
    parts.extend(_item_text(data.get("items")))
    caption = data.get("caption")
    if isinstance(caption, str):
        parts.append(caption)
    return parts


def extract_plain_text(content: Union[str, Dict[str, Any], None]) -> str:
    """Flatten note content into plain text.

    Content is either a string or an editor block document
    (``{"time": ..., "version": ..., "blocks": [...]}``). For block documents
    the text of every block is joined with newlines and inline markup tags
    are dropped.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    blocks = content.get("blocks")
    if not isinstance(blocks, list):
        return ""
    parts: List[str] = []
    for block in blocks:
        if isinstance(block, dict):
            parts.extend(_block_text(block))
    return _MARKUP_TAG.sub("", "\n".join(parts))


def count_words(text: str) -> int:
    """Count words in text.

    Whitespace-separated tokens are words; every CJK character is a word of
    its own, since those scripts do not separate words with spaces.
    """
    if not text:
        return 0
    cjk = len(_CJK_CHAR.findall(text))
    tokens = _CJK_CHAR.sub(" ", text).split()
    return cjk + len(tokens)


def reading_time(word_count: int, words_per_minute: int) -> int:
    """Estimated reading time in whole minutes (rounded up)."""
    if word_count <= 0:
        return 0
    return math.ceil(word_count / words_per_minute)
