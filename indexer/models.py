"""Domain models for the project content index.

Input records come from the external project store; everything else is
produced by the indexer and is treated as immutable once built.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)


def _pick(data: Dict[str, Any], *names: str, default: Any = None) -> Any:
    """Return the first present key out of camelCase/snake_case spellings."""
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return default


def _parse_timestamp(value: Any) -> Union[datetime, str, None]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        logger.warning(f"Unparseable updatedAt value kept verbatim: {text!r}")
        return text


def _tag_name(tag: Any) -> str:
    if isinstance(tag, dict):
        return str(tag.get('name') or '')
    return str(tag)


@dataclass(frozen=True)
class MediaItem:
    """A media attachment on a project record."""
    id: str
    type: str
    url: Optional[str] = None
    alt_text: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MediaItem':
        return cls(
            id=str(data['id']),
            type=str(_pick(data, 'type', default='image')),
            url=_pick(data, 'url'),
            alt_text=_pick(data, 'altText', 'alt_text'),
            description=_pick(data, 'description'),
        )


@dataclass(frozen=True)
class RawProjectRecord:
    """Project record as supplied by the store. Never mutated by the indexer."""
    id: str
    title: str
    description: Optional[str] = None
    brief_overview: Optional[str] = None
    article_content: Optional[Any] = None
    media_items: Tuple[MediaItem, ...] = ()
    tags: Tuple[str, ...] = ()
    updated_at: Union[datetime, str, None] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawProjectRecord':
        """Build a record from a store row or API payload.

        Accepts both camelCase and snake_case keys. ``articleContent`` may be
        the document tree itself or a wrapper holding it under ``jsonContent``.
        Tags may be plain names or ``{"name": ...}`` objects.
        """
        content = _pick(data, 'articleContent', 'article_content')
        if isinstance(content, dict) and 'jsonContent' in content:
            content = content['jsonContent']

        return cls(
            id=str(data['id']),
            title=str(_pick(data, 'title', default='')),
            description=_pick(data, 'description'),
            brief_overview=_pick(data, 'briefOverview', 'brief_overview'),
            article_content=content,
            media_items=tuple(
                MediaItem.from_dict(m) if isinstance(m, dict) else m
                for m in _pick(data, 'mediaItems', 'media_items', default=[])
            ),
            tags=tuple(_tag_name(t) for t in _pick(data, 'tags', default=[])),
            updated_at=_parse_timestamp(_pick(data, 'updatedAt', 'updated_at')),
        )


@dataclass(frozen=True)
class SummaryProjection:
    """Lightweight projection of a project used for summaries."""
    id: str
    title: str
    brief_overview: Optional[str] = None
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()


class SectionKind(str, Enum):
    """Kinds of top-level document blocks."""
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    OTHER = "other"


@dataclass(frozen=True)
class Section:
    """One searchable unit produced from a single top-level block."""
    id: str
    position: int
    kind: SectionKind
    node_type: str
    content: str
    level: Optional[int] = None
    title: Optional[str] = None
    keywords: FrozenSet[str] = frozenset()
    summary: str = ""
    importance: float = 0.5

    def to_dict(self, include_content: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "position": self.position,
            "kind": self.kind.value,
            "node_type": self.node_type,
            "level": self.level,
            "title": self.title,
            "summary": self.summary,
            "keywords": sorted(self.keywords),
            "importance": self.importance,
        }
        if include_content:
            data["content"] = self.content
        return data


@dataclass(frozen=True)
class MediaContext:
    """Search-facing description of one media item."""
    id: str
    type: str
    url: Optional[str] = None
    alt_text: Optional[str] = None
    description: Optional[str] = None
    context: str = ""
    relevance_score: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "url": self.url,
            "alt_text": self.alt_text,
            "description": self.description,
            "context": self.context,
            "relevance_score": self.relevance_score,
        }


@dataclass(frozen=True)
class ProjectIndex:
    """Cached, searchable representation of one project."""
    project_id: str
    title: str
    keywords: FrozenSet[str]
    technologies: FrozenSet[str]
    topics: FrozenSet[str]
    sections: Tuple[Section, ...]
    media_context: Tuple[MediaContext, ...]
    summary: str
    content_hash: str
    indexed_at: datetime

    def to_dict(self, include_sections: bool = True, include_media: bool = True,
                include_content: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "project_id": self.project_id,
            "title": self.title,
            "keywords": sorted(self.keywords),
            "technologies": sorted(self.technologies),
            "topics": sorted(self.topics),
            "summary": self.summary,
            "content_hash": self.content_hash,
            "indexed_at": self.indexed_at.isoformat(),
        }
        if include_sections:
            data["sections"] = [s.to_dict(include_content=include_content) for s in self.sections]
        if include_media:
            data["media_context"] = [m.to_dict() for m in self.media_context]
        return data


@dataclass(frozen=True)
class ScoredSection:
    """A search hit: a section with its relevance score and owning project."""
    project_id: str
    project_title: str
    section: Section
    score: float

    def to_dict(self, include_content: bool = True) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "project_title": self.project_title,
            "score": self.score,
            **self.section.to_dict(include_content=include_content),
        }


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the index cache contents."""
    project_ids: FrozenSet[str]
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"project_ids": sorted(self.project_ids), "size": self.size}


@dataclass
class HeadingEntry:
    """Node of the heading outline built from heading sections."""
    level: int
    title: str
    section_id: str
    children: List['HeadingEntry'] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "title": self.title,
            "section_id": self.section_id,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class ContentStructure:
    total_sections: int
    heading_hierarchy: List[HeadingEntry]
    content_types: List[str]
    estimated_read_time: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_sections": self.total_sections,
            "heading_hierarchy": [h.to_dict() for h in self.heading_hierarchy],
            "content_types": list(self.content_types),
            "estimated_read_time": self.estimated_read_time,
        }


@dataclass
class MediaOverview:
    total_images: int = 0
    total_videos: int = 0
    has_carousels: bool = False
    has_interactive_content: bool = False
    has_downloads: bool = False
    media_descriptions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_images": self.total_images,
            "total_videos": self.total_videos,
            "has_carousels": self.has_carousels,
            "has_interactive_content": self.has_interactive_content,
            "has_downloads": self.has_downloads,
            "media_descriptions": list(self.media_descriptions),
        }


@dataclass
class ProjectSummary:
    """AI-context summary of a project."""
    project_id: str
    title: str
    brief_summary: str
    detailed_summary: str
    key_technologies: List[str]
    main_topics: List[str]
    content_structure: ContentStructure
    media_overview: MediaOverview

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "title": self.title,
            "brief_summary": self.brief_summary,
            "detailed_summary": self.detailed_summary,
            "key_technologies": list(self.key_technologies),
            "main_topics": list(self.main_topics),
            "content_structure": self.content_structure.to_dict(),
            "media_overview": self.media_overview.to_dict(),
        }


@dataclass
class BatchIndexResult:
    project_id: str
    success: bool
    error: Optional[str] = None


@dataclass
class BatchIndexReport:
    """Outcome of indexing several projects in batches."""
    results: List[BatchIndexResult]
    batch_size: int

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [
                {"project_id": r.project_id, "success": r.success, "error": r.error}
                for r in self.results
            ],
            "summary": {
                "total": len(self.results),
                "successful": self.successful,
                "failed": self.failed,
                "batch_size": self.batch_size,
            },
        }
