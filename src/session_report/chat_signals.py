# ABOUTME: Derives confusion signals and engagement bursts from student chat.
# ABOUTME: Correlates bursts with teacher speech segments using a time tolerance.

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .config import BURST_MIN_MESSAGES, BURST_TALK_TOLERANCE_SEC, BURST_WINDOW_SEC
from .numeric import percent
from .schemas import AuthorRole, EngagementBurst, Segment, StudentSession, TimedChat
from .topics import CompiledTable


def student_messages(chats: Sequence) -> List:
    return [c for c in chats if c.author_role == AuthorRole.STUDENT]


def detect_confusion(
    chats: Sequence[TimedChat],
    window_start: float,
    window_end: float,
    table: CompiledTable,
    max_examples: int = 3,
) -> Tuple[bool, List[str]]:
    """Return whether any student message in [start, end] matches a confusion pattern."""

    examples: List[str] = []
    found = False
    for chat in chats:
        if chat.author_role != AuthorRole.STUDENT:
            continue
        if not window_start <= chat.timestamp_sec <= window_end:
            continue
        if any(pattern.search(chat.text) for pattern, _ in table):
            found = True
            if len(examples) < max_examples:
                examples.append(chat.text.strip()[:120])
    return found, examples


def detect_engagement_bursts(
    chats: Sequence[TimedChat],
    window_sec: float = BURST_WINDOW_SEC,
    min_messages: int = BURST_MIN_MESSAGES,
) -> List[EngagementBurst]:
    """
    Find runs of at least `min_messages` student messages inside a rolling window.

    Scans greedily from the earliest unconsumed message; a burst swallows every
    message within `window_sec` of its first one, so bursts never overlap.
    """

    times = sorted(c.timestamp_sec for c in student_messages(chats))
    bursts: List[EngagementBurst] = []
    i = 0
    n = len(times)
    while i < n:
        j = i
        while j + 1 < n and times[j + 1] - times[i] <= window_sec:
            j += 1
        count = j - i + 1
        if count >= min_messages:
            bursts.append(EngagementBurst(start_sec=times[i], end_sec=times[j], message_count=count))
            i = j + 1
        else:
            i += 1
    return bursts


def burst_overlaps_talk(
    burst: EngagementBurst,
    segments: Sequence[Segment],
    tolerance_sec: float = BURST_TALK_TOLERANCE_SEC,
) -> bool:
    for seg in segments:
        if seg.start_sec - tolerance_sec <= burst.end_sec and burst.start_sec <= seg.end_sec + tolerance_sec:
            return True
    return False


def annotate_bursts(
    bursts: Sequence[EngagementBurst],
    segments: Sequence[Segment],
    tolerance_sec: float = BURST_TALK_TOLERANCE_SEC,
) -> List[EngagementBurst]:
    return [
        EngagementBurst(
            start_sec=b.start_sec,
            end_sec=b.end_sec,
            message_count=b.message_count,
            overlaps_talk=burst_overlaps_talk(b, segments, tolerance_sec),
        )
        for b in bursts
    ]


def chat_participation_rate(
    chats: Sequence,
    students: Sequence[StudentSession],
    total_students: Optional[int] = None,
) -> int:
    """Percent of enrolled students who sent at least one chat message."""

    authors = {c.author_id for c in student_messages(chats) if c.author_id is not None}
    if total_students is None:
        total_students = sum(1 for s in students if s.is_student)
    # Without a roster, the chat authors are the only students we know about.
    denominator = total_students if total_students > 0 else len(authors)
    return percent(min(len(authors), denominator), denominator)
