"""Keyword, technology and topic extraction for project indexes."""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Pattern, Sequence, Tuple

from observability.logging import log_performance
from .models import Section

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset([
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
    'by', 'from', 'up', 'about', 'into', 'through', 'during', 'before', 'after',
    'above', 'below', 'between', 'among', 'this', 'that', 'these', 'those', 'i',
    'me', 'my', 'myself', 'we', 'our', 'ours', 'ourselves', 'you', 'your', 'yours',
    'yourself', 'yourselves', 'he', 'him', 'his', 'himself', 'she', 'her', 'hers',
    'herself', 'it', 'its', 'itself', 'they', 'them', 'their', 'theirs', 'themselves',
    'what', 'which', 'who', 'whom', 'am', 'is', 'are', 'was', 'were', 'be', 'been',
    'being', 'have', 'has', 'had', 'having', 'do', 'does', 'did', 'doing', 'will',
    'would', 'should', 'could', 'can', 'may', 'might', 'must', 'shall', 'ought',
    'not', 'no', 'yes', 'also', 'just', 'than', 'then', 'very', 'too', 'more', 'most',
])

# canonical name -> aliases recognised in free text (canonical included when unambiguous)
TECHNOLOGY_VOCABULARY: Dict[str, Tuple[str, ...]] = {
    # Languages
    'javascript': ('javascript',),
    'typescript': ('typescript',),
    'python': ('python',),
    'java': ('java',),
    'c++': ('c++', 'cpp'),
    'c#': ('c#', 'csharp'),
    'php': ('php',),
    'ruby': ('ruby',),
    'go': ('golang',),
    'rust': ('rust',),
    'swift': ('swiftui',),
    'kotlin': ('kotlin',),
    # Frameworks
    'react': ('react', 'react.js', 'reactjs'),
    'react native': ('react native',),
    'vue': ('vue', 'vue.js', 'vuejs'),
    'angular': ('angular',),
    'svelte': ('svelte', 'sveltekit'),
    'next.js': ('next.js', 'nextjs'),
    'nuxt': ('nuxt', 'nuxt.js'),
    'node.js': ('node.js', 'nodejs'),
    'express': ('express.js', 'expressjs'),
    'django': ('django',),
    'flask': ('flask',),
    'fastapi': ('fastapi',),
    'spring': ('spring boot',),
    'laravel': ('laravel',),
    'tailwind': ('tailwind', 'tailwindcss'),
    'tiptap': ('tiptap',),
    'prisma': ('prisma',),
    'graphql': ('graphql',),
    # Databases
    'mysql': ('mysql',),
    'postgresql': ('postgresql', 'postgres'),
    'mongodb': ('mongodb',),
    'redis': ('redis',),
    'sqlite': ('sqlite',),
    'firebase': ('firebase',),
    'supabase': ('supabase',),
    # Cloud / DevOps
    'aws': ('aws',),
    'azure': ('azure',),
    'gcp': ('gcp',),
    'docker': ('docker',),
    'kubernetes': ('kubernetes', 'k8s'),
    'vercel': ('vercel',),
    'netlify': ('netlify',),
    'heroku': ('heroku',),
    # Tools
    'git': ('git',),
    'webpack': ('webpack',),
    'vite': ('vite',),
    'babel': ('babel',),
    'eslint': ('eslint',),
    'prettier': ('prettier',),
    'jest': ('jest',),
    'cypress': ('cypress',),
    # ML
    'tensorflow': ('tensorflow',),
    'pytorch': ('pytorch',),
}

TOPIC_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ('web development', r'web development|frontend|backend|fullstack'),
    ('mobile development', r'mobile|ios|android|react native|flutter'),
    ('artificial intelligence', r'ai|machine learning|deep learning|neural network'),
    ('data science', r'data science|analytics|visualization|dashboard'),
    ('design', r'ui|ux|design|interface|user experience'),
    ('api development', r'api|rest|graphql|microservices'),
    ('database', r'database|sql|nosql|data modeling'),
    ('devops', r'devops|deployment|ci/cd|automation'),
    ('security', r'security|authentication|authorization|encryption'),
    ('performance', r'performance|optimization|caching|scaling'),
)

_TOKEN_SPLIT = re.compile(r'[^a-z0-9]+')
_WORD = r'[a-z0-9_]'


def _alias_pattern(alias: str) -> str:
    body = r'\s+'.join(re.escape(part) for part in alias.split())
    return rf'(?<!{_WORD}){body}(?!{_WORD})'


def _compile_vocabulary() -> List[Tuple[str, Pattern[str]]]:
    compiled = []
    for canonical, aliases in TECHNOLOGY_VOCABULARY.items():
        pattern = '|'.join(_alias_pattern(a) for a in aliases)
        compiled.append((canonical, re.compile(pattern, re.IGNORECASE)))
    return compiled


_TECH_PATTERNS = _compile_vocabulary()
_TOPIC_PATTERNS = [
    (topic, re.compile(rf'\b(?:{pattern})\b', re.IGNORECASE))
    for topic, pattern in TOPIC_PATTERNS
]
# tags are matched against canonical names and every alias, ambiguous ones included
_TAG_LOOKUP: Dict[str, str] = {}
for _canonical, _aliases in TECHNOLOGY_VOCABULARY.items():
    _TAG_LOOKUP[_canonical] = _canonical
    for _alias in _aliases:
        _TAG_LOOKUP[_alias] = _canonical


def tokenize(text: Optional[str]) -> List[str]:
    """Split text on non-alphanumeric boundaries into lower-case tokens."""
    if not text:
        return []
    return [t for t in _TOKEN_SPLIT.split(text.lower()) if t]


def is_stop_word(word: str) -> bool:
    return word.lower() in STOP_WORDS


def section_keywords(text: str, limit: int = 10, min_length: int = 4) -> FrozenSet[str]:
    """Most frequent non-stopword tokens of a section's text."""
    words = [w for w in tokenize(text) if len(w) >= min_length and not is_stop_word(w)]
    if not words:
        return frozenset()
    counts = Counter(words)
    # dict preserves first occurrence; sorted() is stable on ties
    ranked = sorted(dict.fromkeys(words), key=lambda w: -counts[w])
    return frozenset(ranked[:limit])


def detect_technologies(texts: Iterable[Optional[str]], tags: Iterable[str] = ()) -> FrozenSet[str]:
    """Match the technology vocabulary against free text and tag names."""
    found = set()
    corpus = '\n'.join(t for t in texts if t)
    if corpus:
        for canonical, pattern in _TECH_PATTERNS:
            if pattern.search(corpus):
                found.add(canonical)

    for tag in tags:
        canonical = _TAG_LOOKUP.get(tag.strip().lower())
        if canonical:
            found.add(canonical)

    return frozenset(found)


def detect_topics(texts: Iterable[Optional[str]]) -> FrozenSet[str]:
    corpus = '\n'.join(t for t in texts if t)
    if not corpus:
        return frozenset()
    return frozenset(topic for topic, pattern in _TOPIC_PATTERNS if pattern.search(corpus))


@dataclass(frozen=True)
class ExtractionResult:
    keywords: FrozenSet[str]
    technologies: FrozenSet[str]
    topics: FrozenSet[str]


class KeywordExtractor:
    """Derives keyword, technology and topic sets for a project."""

    def __init__(self, min_keyword_length: int = 3, section_keyword_limit: int = 10):
        self.min_keyword_length = min_keyword_length
        self.section_keyword_limit = section_keyword_limit

    def title_tokens(self, title: Optional[str]) -> FrozenSet[str]:
        return frozenset(
            t for t in tokenize(title)
            if len(t) >= self.min_keyword_length and not is_stop_word(t)
        )

    def section_keywords(self, text: str) -> FrozenSet[str]:
        return section_keywords(text, limit=self.section_keyword_limit)

    @log_performance(threshold_ms=250.0)
    def extract(self,
                title: Optional[str],
                description: Optional[str],
                brief_overview: Optional[str],
                sections: Sequence[Section],
                tags: Sequence[str]) -> ExtractionResult:
        """Compute keywords, technologies and topics.

        Keywords are the union of lower-cased tag names, qualifying title
        tokens and every detected technology, so a project with a meaningful
        title is always discoverable even without tags or article content.
        """
        texts: List[Optional[str]] = [title, description, brief_overview]
        for section in sections:
            texts.append(section.title)
            texts.append(section.content)

        technologies = detect_technologies(texts, tags)
        topics = detect_topics(texts)

        tag_keywords = {t.strip().lower() for t in tags if t and t.strip()}
        keywords = frozenset(tag_keywords | self.title_tokens(title) | technologies)

        logger.debug(
            f"Extracted {len(keywords)} keywords, {len(technologies)} technologies, "
            f"{len(topics)} topics"
        )
        return ExtractionResult(keywords=keywords, technologies=technologies, topics=topics)
