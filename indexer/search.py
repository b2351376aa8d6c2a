"""Relevance ranking of sections across indexed projects."""

import logging
from typing import List, Sequence, Tuple

from .models import ProjectIndex, ScoredSection, Section

logger = logging.getLogger(__name__)

_EDGE_PUNCTUATION = '.,;:!?"\'()[]{}<>'


def tokenize_query(query: str) -> List[str]:
    """Whitespace-split, lower-case query tokens, deduplicated in order."""
    tokens = []
    for raw in (query or '').lower().split():
        token = raw.strip(_EDGE_PUNCTUATION)
        if token and token not in tokens:
            tokens.append(token)
    return tokens


class SearchEngine:
    """Scores sections by weighted token matches.

    Per query token a section earns ``title_weight`` when its title contains
    the token, ``content_weight`` when its content does, and
    ``keyword_weight`` when the token is one of the section's keywords or one
    of the owning project's technologies. Signals add up.
    """

    def __init__(self,
                 title_weight: float = 3.0,
                 content_weight: float = 2.0,
                 keyword_weight: float = 1.0):
        self.title_weight = title_weight
        self.content_weight = content_weight
        self.keyword_weight = keyword_weight

    def score_section(self, section: Section, index: ProjectIndex, tokens: Sequence[str]) -> float:
        title = (section.title or '').lower()
        content = section.content.lower()
        score = 0.0

        for token in tokens:
            if title and token in title:
                score += self.title_weight
            if content and token in content:
                score += self.content_weight
            if token in section.keywords or token in index.technologies:
                score += self.keyword_weight

        return score

    def search(self, indexes: Sequence[ProjectIndex], query: str, limit: int) -> List[ScoredSection]:
        """Rank sections of ``indexes`` against ``query``.

        Ties keep the order of ``indexes`` and then document order, so the
        caller's project ordering doubles as a priority.
        """
        tokens = tokenize_query(query)
        if not tokens or limit <= 0:
            return []

        ranked: List[Tuple[float, int, int, ScoredSection]] = []
        for project_rank, index in enumerate(indexes):
            for section in index.sections:
                score = self.score_section(section, index, tokens)
                if score <= 0:
                    continue
                hit = ScoredSection(
                    project_id=index.project_id,
                    project_title=index.title,
                    section=section,
                    score=score,
                )
                ranked.append((-score, project_rank, section.position, hit))

        ranked.sort(key=lambda entry: entry[:3])
        results = [entry[3] for entry in ranked[:limit]]

        logger.debug(
            f"Query {query!r} matched {len(ranked)} sections across {len(indexes)} projects, "
            f"returning {len(results)}"
        )
        return results
