# ABOUTME: Summarizes emoji reactions, per-minute engagement, and per-student participation.
# ABOUTME: Buckets chats and reactions by clock minute for session-level charts.

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Sequence

from .schemas import ReactionEvent, StudentSession, TimedChat
from .time_normalizer import format_clock, parse_clock_seconds


def _emotion(reaction: ReactionEvent) -> str:
    return (reaction.emotion or "").strip().lower() or "unknown"


def reaction_breakdown(reactions: Sequence[ReactionEvent]) -> Dict[str, int]:
    counts = Counter(_emotion(r) for r in reactions)
    return {emotion: counts[emotion] for emotion in sorted(counts)}


def reaction_timeline(reactions: Sequence[ReactionEvent]) -> List[Dict[str, Any]]:
    """Reaction counts per clock minute, one key per emotion seen in that minute."""

    buckets: Dict[int, Counter] = {}
    for reaction in reactions:
        ts = parse_clock_seconds(reaction.timestamp)
        if ts is None:
            continue
        buckets.setdefault(int(ts // 60), Counter())[_emotion(reaction)] += 1
    timeline = []
    for minute, counts in sorted(buckets.items()):
        row: Dict[str, Any] = {"time": format_clock(minute * 60)[:5]}
        row.update((emotion, counts[emotion]) for emotion in sorted(counts))
        timeline.append(row)
    return timeline


def engagement_timeline(chats: Sequence[TimedChat], reactions: Sequence[ReactionEvent]) -> List[Dict]:
    """Chat and reaction counts per clock minute, sorted by time; untimed rows are skipped."""

    buckets: Dict[int, Dict[str, int]] = {}
    for chat in chats:
        minute = int(chat.timestamp_sec // 60)
        buckets.setdefault(minute, {"chats": 0, "reactions": 0})["chats"] += 1
    for reaction in reactions:
        ts = parse_clock_seconds(reaction.timestamp)
        if ts is None:
            continue
        minute = int(ts // 60)
        buckets.setdefault(minute, {"chats": 0, "reactions": 0})["reactions"] += 1
    return [
        {"time": format_clock(minute * 60)[:5], "chats": counts["chats"], "reactions": counts["reactions"]}
        for minute, counts in sorted(buckets.items())
    ]


def rank_students(students: Sequence[StudentSession]) -> List[StudentSession]:
    """Student rows only, most active first; ties keep export order."""

    return sorted((s for s in students if s.is_student), key=lambda s: -(s.active_time_min or 0.0))
