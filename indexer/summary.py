"""Project digest text and AI-context summaries built from an index."""

import math
from typing import List, Sequence, Tuple

from .models import (
    ContentStructure,
    HeadingEntry,
    MediaContext,
    MediaItem,
    MediaOverview,
    ProjectIndex,
    ProjectSummary,
    RawProjectRecord,
    Section,
    SectionKind,
    SummaryProjection,
)

MEDIA_RELEVANCE = {
    'interactive': 0.9,
    'carousel': 0.8,
    'image': 0.7,
    'video': 0.7,
    'download': 0.6,
}

CHARS_PER_MINUTE = 1000
MAX_MEDIA_DESCRIPTIONS = 5


def build_media_context(media_items: Sequence[MediaItem]) -> Tuple[MediaContext, ...]:
    """One MediaContext per media item, order preserved."""
    contexts = []
    for position, media in enumerate(media_items, start=1):
        media_type = (media.type or '').lower()
        contexts.append(MediaContext(
            id=media.id,
            type=media_type,
            url=media.url,
            alt_text=media.alt_text,
            description=media.description,
            context=f"Media item {position} in project",
            relevance_score=MEDIA_RELEVANCE.get(media_type, 0.5),
        ))
    return tuple(contexts)


def build_digest(record: RawProjectRecord,
                 sections: Sequence[Section],
                 media_context: Sequence[MediaContext]) -> str:
    """Multi-line textual digest stored on the index."""
    parts = [
        f"Project: {record.title}",
        f"Overview: {record.brief_overview}" if record.brief_overview else '',
        f"Description: {record.description}" if record.description else '',
        f"Content sections: {len(sections)}" if sections else '',
        f"Media items: {len(media_context)}" if media_context else '',
        f"Tags: {', '.join(record.tags)}" if record.tags else '',
    ]
    return '\n'.join(p for p in parts if p)


def build_heading_hierarchy(sections: Sequence[Section]) -> List[HeadingEntry]:
    """Nest heading sections by level; headings without a level count as 1."""
    roots: List[HeadingEntry] = []
    stack: List[HeadingEntry] = []

    for section in sections:
        if section.kind is not SectionKind.HEADING:
            continue
        entry = HeadingEntry(level=section.level or 1, title=section.title or '', section_id=section.id)

        while stack and stack[-1].level >= entry.level:
            stack.pop()

        if stack:
            stack[-1].children.append(entry)
        else:
            roots.append(entry)
        stack.append(entry)

    return roots


def build_media_overview(media_context: Sequence[MediaContext]) -> MediaOverview:
    return MediaOverview(
        total_images=sum(1 for m in media_context if m.type == 'image'),
        total_videos=sum(1 for m in media_context if m.type == 'video'),
        has_carousels=any(m.type == 'carousel' for m in media_context),
        has_interactive_content=any(m.type == 'interactive' for m in media_context),
        has_downloads=any(m.type == 'download' for m in media_context),
        media_descriptions=[m.description for m in media_context if m.description][:MAX_MEDIA_DESCRIPTIONS],
    )


def build_project_summary(index: ProjectIndex, projection: SummaryProjection) -> ProjectSummary:
    total_chars = sum(len(s.content) for s in index.sections)
    structure = ContentStructure(
        total_sections=len(index.sections),
        heading_hierarchy=build_heading_hierarchy(index.sections),
        content_types=list(dict.fromkeys(s.node_type for s in index.sections)),
        estimated_read_time=math.ceil(total_chars / CHARS_PER_MINUTE),
    )

    return ProjectSummary(
        project_id=index.project_id,
        title=projection.title,
        brief_summary=projection.brief_overview or '',
        detailed_summary=index.summary,
        key_technologies=sorted(index.technologies),
        main_topics=sorted(index.topics),
        content_structure=structure,
        media_overview=build_media_overview(index.media_context),
    )
