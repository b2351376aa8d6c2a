"""Rich-document parser for project article content.

Converts a Tiptap/ProseMirror style JSON tree into an ordered tuple of
Sections, one per top-level block. Raw dicts are first lifted into a small
tagged node model so the text extraction below never has to guess at field
names.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from observability.logging import log_performance
from .keywords import section_keywords
from .models import Section, SectionKind

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')

SUMMARY_LENGTH = 200

# Importance bonus for block types that carry more than prose
NODE_TYPE_BONUS: Dict[str, float] = {
    'codeBlock': 0.2,
    'imageCarousel': 0.15,
    'interactiveEmbed': 0.25,
    'downloadButton': 0.1,
}


@dataclass(frozen=True)
class TextNode:
    text: str


@dataclass(frozen=True)
class HeadingNode:
    level: Optional[int]
    children: Tuple['DocNode', ...] = ()


@dataclass(frozen=True)
class ParagraphNode:
    children: Tuple['DocNode', ...] = ()


@dataclass(frozen=True)
class OtherNode:
    node_type: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    children: Tuple['DocNode', ...] = ()


DocNode = Union[TextNode, HeadingNode, ParagraphNode, OtherNode]


def _node_type_of(raw: Any) -> str:
    node_type = raw.get('type') if isinstance(raw, dict) else None
    return node_type if isinstance(node_type, str) and node_type else 'unknown'


def _raw_children(raw: Any) -> List[Any]:
    if not isinstance(raw, dict) or _node_type_of(raw) == 'text':
        return []
    content = raw.get('content')
    return content if isinstance(content, list) else []


def _make_node(raw: Any, children: Tuple['DocNode', ...]) -> 'DocNode':
    if not isinstance(raw, dict):
        return OtherNode(node_type='unknown')

    node_type = _node_type_of(raw)
    if node_type == 'text':
        text = raw.get('text')
        return TextNode(text=text if isinstance(text, str) else '')

    attrs = raw.get('attrs') if isinstance(raw.get('attrs'), dict) else {}

    if node_type == 'heading':
        level = attrs.get('level')
        # bool is an int subclass; reject it explicitly
        if not isinstance(level, int) or isinstance(level, bool):
            level = None
        return HeadingNode(level=level, children=children)
    if node_type == 'paragraph':
        return ParagraphNode(children=children)
    return OtherNode(node_type=node_type, attrs=dict(attrs), children=children)


def build_node(raw: Any) -> DocNode:
    """Lift a raw JSON node into the tagged node model.

    Anything that is not a dict becomes an empty ``OtherNode``; missing or
    mistyped fields are treated as empty. The tree is walked with an explicit
    stack, so nesting depth is not bounded by the interpreter's recursion limit.
    """
    built: List[DocNode] = []
    # (raw node, children already built)
    stack: List[Tuple[Any, bool]] = [(raw, False)]

    while stack:
        current, expanded = stack.pop()
        raw_children = _raw_children(current)

        if not expanded:
            stack.append((current, True))
            stack.extend((child, False) for child in reversed(raw_children))
            continue

        count = len(raw_children)
        children = tuple(built[len(built) - count:]) if count else ()
        if count:
            del built[len(built) - count:]
        built.append(_make_node(current, children))

    return built[0]


def _text_leaves(node: DocNode) -> Iterator[str]:
    stack: List[DocNode] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, TextNode):
            yield current.text
        else:
            stack.extend(reversed(current.children))


def flatten_text(node: DocNode, separator: str = ' ') -> str:
    """Concatenate every descendant text leaf of ``node``.

    With the default single-space separator whitespace runs are collapsed,
    so the result reads as one normalised line.
    """
    joined = separator.join(_text_leaves(node))
    if separator == ' ':
        joined = _WHITESPACE.sub(' ', joined)
    return joined.strip()


def _node_type_name(node: DocNode) -> str:
    if isinstance(node, HeadingNode):
        return 'heading'
    if isinstance(node, ParagraphNode):
        return 'paragraph'
    if isinstance(node, TextNode):
        return 'text'
    return node.node_type


def _other_title(node: DocNode) -> Optional[str]:
    if isinstance(node, OtherNode):
        for key in ('title', 'label'):
            value = node.attrs.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def section_summary(text: str, length: int = SUMMARY_LENGTH) -> str:
    """First ``length`` characters of ``text``, with ``...`` when truncated."""
    text = text.strip()
    if len(text) <= length:
        return text
    return text[:length] + '...'


def section_importance(node_type: str, level: Optional[int], text: str) -> float:
    """Relative weight of a section in [0.3, 1.0].

    Headings start from their level (h1 highest); other blocks start at 0.5.
    Rich block types and longer text add small bonuses.
    """
    importance = 0.5
    if node_type == 'heading':
        importance = max(0.9 - ((level or 1) - 1) * 0.15, 0.3)
    importance += NODE_TYPE_BONUS.get(node_type, 0.0)
    importance += min(len(text) / 500, 1.0) * 0.1
    return min(importance, 1.0)


def top_level_blocks(tree: Any) -> List[Any]:
    """Return the raw top-level block list of a document tree."""
    if tree is None:
        return []
    if isinstance(tree, list):
        return tree
    if isinstance(tree, dict):
        content = tree.get('content')
        return content if isinstance(content, list) else []
    logger.warning(f"Ignoring article content of unexpected type {type(tree).__name__}")
    return []


class DocumentParser:
    """Walks a document tree and emits one Section per top-level block."""

    def __init__(self, section_keyword_limit: int = 10):
        self.section_keyword_limit = section_keyword_limit

    def parse_block(self, raw: Any, position: int) -> Section:
        section = self._build_section(build_node(raw), position)
        text = section.content or section.title or ''
        return replace(
            section,
            summary=section_summary(text),
            importance=section_importance(section.node_type, section.level, text),
        )

    def _build_section(self, node: DocNode, position: int) -> Section:
        section_id = f"section-{position + 1}"

        if isinstance(node, HeadingNode):
            title = flatten_text(node, separator='')
            return Section(
                id=section_id,
                position=position,
                kind=SectionKind.HEADING,
                node_type='heading',
                level=node.level,
                title=title,
                content='',
                keywords=section_keywords(title, limit=self.section_keyword_limit),
            )

        content = flatten_text(node)
        if isinstance(node, ParagraphNode):
            return Section(
                id=section_id,
                position=position,
                kind=SectionKind.PARAGRAPH,
                node_type='paragraph',
                title=None,
                content=content,
                keywords=section_keywords(content, limit=self.section_keyword_limit),
            )

        title = _other_title(node)
        keyword_text = f"{title} {content}" if title else content
        return Section(
            id=section_id,
            position=position,
            kind=SectionKind.OTHER,
            node_type=_node_type_name(node),
            title=title,
            content=content,
            keywords=section_keywords(keyword_text, limit=self.section_keyword_limit),
        )

    @log_performance(threshold_ms=250.0)
    def parse(self, tree: Any) -> Tuple[Section, ...]:
        """Parse a document tree into sections in document order.

        Args:
            tree: ``{"type": "doc", "content": [...]}``, a bare block list, or None

        Returns:
            One Section per top-level block; empty when there is no content
        """
        blocks: Sequence[Any] = top_level_blocks(tree)
        sections = tuple(self.parse_block(raw, i) for i, raw in enumerate(blocks))
        logger.debug(f"Parsed {len(sections)} sections from {len(blocks)} blocks")
        return sections
