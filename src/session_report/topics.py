# ABOUTME: Tags teacher speech with subject-matter concepts via ordered keyword patterns.
# ABOUTME: Returns de-duplicated labels in first-seen order or a fallback label.

from __future__ import annotations

from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from .config import DEFAULT_CONFIG, FALLBACK_TOPIC

CompiledTable = Sequence[Tuple[Pattern[str], str]]


def match_labels(texts: Iterable[str], table: CompiledTable) -> List[str]:
    """
    Labels whose pattern matches anywhere in the concatenated text.

    Labels are ordered by where they first appear in the text; two labels first
    seen at the same offset keep table order.
    """

    combined = " ".join(t for t in texts if t)
    if not combined:
        return []
    hits = []
    for rank, (pattern, label) in enumerate(table):
        match = pattern.search(combined)
        if match:
            hits.append((match.start(), rank, label))
    labels: List[str] = []
    for _, _, label in sorted(hits):
        if label not in labels:
            labels.append(label)
    return labels


def count_matches(texts: Iterable[str], table: CompiledTable) -> Tuple[int, List[str]]:
    """Count texts matching at least one row; also return the matching texts."""

    hits: List[str] = []
    for text in texts:
        if text and any(pattern.search(text) for pattern, _ in table):
            hits.append(text)
    return len(hits), hits


def match_topics(texts: Iterable[str], table: Optional[CompiledTable] = None) -> List[str]:
    if table is None:
        table = DEFAULT_CONFIG.patterns.compiled("topics")
    return match_labels(texts, table)


def extract_topics(
    texts: Iterable[str],
    table: Optional[CompiledTable] = None,
    fallback: str = FALLBACK_TOPIC,
) -> str:
    labels = match_topics(texts, table)
    return ", ".join(labels) if labels else fallback
