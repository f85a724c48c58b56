# ABOUTME: Aggregates poll responses into correctness statistics.
# ABOUTME: Supports whole-session, per-activity, and per-question views.

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

import pandas as pd

from .numeric import percent
from .schemas import CorrectnessStat, PollResponse, PollSummary, QuestionStat

_COLUMNS = ["question_id", "question_text", "activity_id", "seen", "answered", "correct"]


def aggregate(responses: Iterable[PollResponse]) -> CorrectnessStat:
    answered = 0
    correct = 0
    for response in responses:
        if response.answered:
            answered += 1
            if response.correct:
                correct += 1
    return CorrectnessStat(answered_count=answered, correct_count=correct, percent=percent(correct, answered))


def aggregate_by_activity(
    responses: Iterable[PollResponse], activity_ids: Iterable[str]
) -> Dict[str, CorrectnessStat]:
    """
    Correctness per known activity.

    Responses pointing at an activity outside `activity_ids` are left out here
    but still count towards the session-wide figure from `aggregate`.
    """

    known = [str(a) for a in activity_ids]
    buckets: Dict[str, List[PollResponse]] = {activity_id: [] for activity_id in known}
    for response in responses:
        key = None if response.activity_id is None else str(response.activity_id)
        if key in buckets:
            buckets[key].append(response)
    return {activity_id: aggregate(buckets[activity_id]) for activity_id in known}


def aggregate_by_question(responses: Sequence[PollResponse]) -> List[QuestionStat]:
    """Per-question correctness over answered responses, in first-seen question order."""

    frame = _responses_frame(responses)
    answered = frame[frame["answered"]]
    if answered.empty:
        return []

    grouped = (
        answered.groupby("question_id", sort=False)
        .agg(
            question_text=("question_text", "first"),
            answered_count=("answered", "size"),
            correct_count=("correct", "sum"),
        )
        .reset_index()
    )

    stats: List[QuestionStat] = []
    for _, row in grouped.iterrows():
        answered_count = int(row["answered_count"])
        correct_count = int(row["correct_count"])
        stats.append(
            QuestionStat(
                question_id=str(row["question_id"]),
                question_text=str(row["question_text"]),
                answered_count=answered_count,
                correct_count=correct_count,
                percent=percent(correct_count, answered_count),
            )
        )
    return stats


def summarize_polls(responses: Sequence[PollResponse]) -> PollSummary:
    overall = aggregate(responses)
    seen = sum(1 for r in responses if r.seen)
    return PollSummary(
        total_polls=len(responses),
        total_seen=seen,
        total_answered=overall.answered_count,
        total_correct=overall.correct_count,
        correctness_percent=overall.percent,
        # An answer implies the poll was seen even when the seen flag is missing.
        response_rate_percent=percent(overall.answered_count, max(seen, overall.answered_count)),
        by_question=aggregate_by_question(responses),
    )


def _responses_frame(responses: Sequence[PollResponse]) -> pd.DataFrame:
    rows = [
        {
            "question_id": "unknown" if r.question_id is None else str(r.question_id),
            "question_text": r.question_text or "",
            "activity_id": None if r.activity_id is None else str(r.activity_id),
            "seen": bool(r.seen),
            "answered": bool(r.answered),
            "correct": bool(r.correct) and bool(r.answered),
        }
        for r in responses
    ]
    if not rows:
        return pd.DataFrame({col: pd.Series(dtype="bool" if col in ("seen", "answered", "correct") else "object") for col in _COLUMNS})
    return pd.DataFrame(rows, columns=_COLUMNS)
