# ABOUTME: Maps concepts taught before each activity to the correctness that followed.
# ABOUTME: Aggregates per-concept correctness and bands concepts as strong, developing, or weak.

from __future__ import annotations

from typing import Dict, List, Sequence

import pandas as pd

from .config import ReportThresholds
from .numeric import percent
from .schemas import ActivityTimelineEntry, ConceptMastery

STRONG = "strong"
DEVELOPING = "developing"
WEAK = "weak"


def build_concept_mastery(
    entries: Sequence[ActivityTimelineEntry], thresholds: ReportThresholds
) -> List[ConceptMastery]:
    """
    Join each activity's pre-teaching topics with its correctness.

    Concepts appear in order of first teaching; an activity counts once per
    concept taught before it. Activities without answered questions are skipped.
    """

    rows = []
    for entry in entries:
        if entry.correctness.answered_count == 0:
            continue
        for concept in _split_topics(entry.pre_teaching.topics, thresholds.fallback_topic):
            rows.append(
                {
                    "concept": concept,
                    "activity_id": entry.activity_id,
                    "answered": entry.correctness.answered_count,
                    "correct": entry.correctness.correct_count,
                }
            )
    if not rows:
        return []

    frame = pd.DataFrame(rows)
    grouped = (
        frame.groupby("concept", sort=False)
        .agg(
            activity_ids=("activity_id", list),
            answered=("answered", "sum"),
            correct=("correct", "sum"),
        )
        .reset_index()
    )

    concepts: List[ConceptMastery] = []
    for _, row in grouped.iterrows():
        pct = percent(int(row["correct"]), int(row["answered"]))
        concepts.append(
            ConceptMastery(
                concept=str(row["concept"]),
                activity_ids=[str(a) for a in row["activity_ids"]],
                answered_count=int(row["answered"]),
                correct_count=int(row["correct"]),
                percent=pct,
                band=_band(pct, thresholds),
            )
        )
    return concepts


def concepts_by_band(concepts: Sequence[ConceptMastery]) -> Dict[str, List[str]]:
    bands: Dict[str, List[str]] = {STRONG: [], DEVELOPING: [], WEAK: []}
    for concept in concepts:
        bands[concept.band].append(concept.concept)
    return bands


def _band(pct: int, thresholds: ReportThresholds) -> str:
    if pct >= thresholds.high_correctness_pct:
        return STRONG
    if pct < thresholds.low_correctness_pct:
        return WEAK
    return DEVELOPING


def _split_topics(label: str, fallback: str) -> List[str]:
    if not label or label == fallback:
        return []
    return [part.strip() for part in label.split(",") if part.strip()]
