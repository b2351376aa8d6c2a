"""Content fingerprinting for project records.

The fingerprint is the staleness signal exposed on every ProjectIndex. Fields
are hashed as one canonical JSON array in this fixed order:

    [title, description, brief_overview, article_content,
     tag names, media item ids, updated_at]

The document tree is serialized with sorted keys so dict ordering does not
matter; tag and media order does.
"""

import hashlib
import json
from datetime import datetime
from typing import Any, List, Optional, Tuple

from .models import RawProjectRecord


def _timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _encode_scalar(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def canonical_json(value: Any) -> str:
    """Compact JSON with sorted object keys, encoded without recursion.

    Produces the same text as ``json.dumps(value, sort_keys=True,
    separators=(",", ":"), default=str, ensure_ascii=False)`` for string-keyed
    documents, but arbitrarily deep trees do not hit the recursion limit.
    """
    parts: List[str] = []
    # Items are either a value still to encode or a literal fragment
    stack: List[Tuple[bool, Any]] = [(False, value)]

    while stack:
        is_literal, item = stack.pop()
        if is_literal:
            parts.append(item)
        elif isinstance(item, dict):
            pending: List[Tuple[bool, Any]] = [(True, '{')]
            for i, key in enumerate(sorted(item, key=str)):
                prefix = ',' if i else ''
                pending.append((True, f"{prefix}{_encode_scalar(str(key))}:"))
                pending.append((False, item[key]))
            pending.append((True, '}'))
            stack.extend(reversed(pending))
        elif isinstance(item, (list, tuple)):
            pending = [(True, '[')]
            for i, element in enumerate(item):
                if i:
                    pending.append((True, ','))
                pending.append((False, element))
            pending.append((True, ']'))
            stack.extend(reversed(pending))
        else:
            parts.append(_encode_scalar(item))

    return ''.join(parts)


def canonical_payload(record: RawProjectRecord) -> str:
    """Serialize the hashed fields of a record in their documented order."""
    fields: List[Any] = [
        record.title,
        record.description,
        record.brief_overview,
        record.article_content,
        list(record.tags),
        [m.id for m in record.media_items],
        _timestamp(record.updated_at),
    ]
    return canonical_json(fields)


def compute_content_hash(record: RawProjectRecord) -> str:
    """Compute SHA-256 hash of a record's indexed content for change detection."""
    return hashlib.sha256(canonical_payload(record).encode('utf-8')).hexdigest()
