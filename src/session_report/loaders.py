# ABOUTME: Converts parsed session exports (camelCase or snake_case keys) into a SessionBundle.
# ABOUTME: Coerces loosely typed export values without raising on malformed cells.

from __future__ import annotations

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from .schemas import (
    ActivityRecord,
    ActivityType,
    AuthorRole,
    ChatMessage,
    PollResponse,
    ReactionEvent,
    SessionBundle,
    SessionMetadata,
    Stamp,
    StudentSession,
    TranscriptLine,
)

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1", "yes", "y", "t"}
FALSE_VALUES = {"false", "0", "no", "n", "f"}


def safe_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        match = re.match(r"^\s*([-+]?\d+)", str(value))
        return int(match.group(1)) if match else None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number)


def safe_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def safe_bool(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    key = str(value).strip().lower()
    if key in TRUE_VALUES:
        return True
    if key in FALSE_VALUES:
        return False
    return None


def _snake(key: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", key).lower()


def _row(raw: Mapping) -> dict:
    """Re-key a record to snake_case so both export spellings read the same."""

    return {_snake(str(k)): v for k, v in raw.items()}


def _pick(row: Mapping, *names: str) -> Any:
    for name in names:
        value = row.get(name)
        if value is not None and value != "":
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _stamp(value: Any) -> Stamp:
    """Keep numeric timestamps as seconds; everything else is an opaque clock string."""

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return _text(value)


def _records(payload: Mapping, *names: str) -> List[dict]:
    rows = _pick(payload, *names) or []
    if not isinstance(rows, list):
        logger.debug("Expected a list under %s, got %s", names[0], type(rows).__name__)
        return []
    return [_row(r) for r in rows if isinstance(r, Mapping)]


def load_metadata(row: Optional[Mapping]) -> Optional[SessionMetadata]:
    if not row:
        return None
    row = _row(row)
    return SessionMetadata(
        session_id=_text(_pick(row, "session_id", "course_session_id", "id")),
        session_name=_text(_pick(row, "session_name", "course_session_name", "name")),
        teacher_name=_text(_pick(row, "teacher_name")),
        teacher_start_time=_stamp(_pick(row, "teacher_start_time", "scheduled_start_time")),
        teaching_time_min=safe_float(_pick(row, "teaching_time_min", "teaching_time")) or 0.0,
        session_temperature=safe_float(_pick(row, "session_temperature")),
        positive_users=safe_int(_pick(row, "positive_users")) or 0,
        negative_users=safe_int(_pick(row, "negative_users")) or 0,
        neutral_users=safe_int(_pick(row, "neutral_users")) or 0,
    )


def load_transcript(rows: Iterable[Mapping]) -> List[TranscriptLine]:
    return [
        TranscriptLine(
            start_time=_stamp(_pick(r, "start_time", "start")),
            end_time=_stamp(_pick(r, "end_time", "end")),
            text=str(_pick(r, "text") or ""),
        )
        for r in rows
    ]


def load_chats(rows: Iterable[Mapping]) -> List[ChatMessage]:
    return [
        ChatMessage(
            timestamp=_stamp(_pick(r, "timestamp", "created_at_ts", "created_at")),
            author_role=AuthorRole.coerce(_pick(r, "author_role", "user_type", "role")),
            author_id=_text(_pick(r, "author_id", "creator_id", "user_id")),
            text=str(_pick(r, "text", "message_text") or ""),
            author_name=_text(_pick(r, "author_name", "creator_name", "user_name")),
        )
        for r in rows
    ]


def load_activities(rows: Iterable[Mapping]) -> List[ActivityRecord]:
    activities: List[ActivityRecord] = []
    for r in rows:
        activity_id = _text(_pick(r, "activity_id", "id"))
        if activity_id is None:
            logger.debug("Dropping activity without an id: %s", r)
            continue
        activities.append(
            ActivityRecord(
                activity_id=activity_id,
                activity_type=ActivityType.coerce(_pick(r, "activity_type", "type")),
                start_time=_stamp(_pick(r, "start_time")),
                end_time=_stamp(_pick(r, "end_time")),
                happened=bool(safe_bool(_pick(r, "happened", "activity_happened"))),
                planned_duration_sec=safe_float(_pick(r, "planned_duration_sec", "planned_duration")) or 0.0,
                actual_duration_sec=safe_float(_pick(r, "actual_duration_sec", "duration")) or 0.0,
                total_questions=safe_int(_pick(r, "total_questions", "total_mcqs")) or 0,
            )
        )
    return activities


def load_polls(rows: Iterable[Mapping]) -> List[PollResponse]:
    return [
        PollResponse(
            question_id=_text(_pick(r, "question_id")),
            activity_id=_text(_pick(r, "activity_id", "classroom_activity_id")),
            seen=bool(safe_bool(_pick(r, "seen", "poll_seen"))),
            answered=bool(safe_bool(_pick(r, "answered", "poll_answered"))),
            correct=bool(safe_bool(_pick(r, "correct", "is_correct_answer", "is_correct"))),
            user_id=_text(_pick(r, "user_id")),
            question_text=_text(_pick(r, "question_text")),
        )
        for r in rows
    ]


def load_students(rows: Iterable[Mapping]) -> List[StudentSession]:
    return [
        StudentSession(
            user_id=_text(_pick(r, "user_id", "id")) or "",
            user_name=_text(_pick(r, "user_name", "name")),
            user_type=(_text(_pick(r, "user_type")) or "STUDENT").upper(),
            sentiment=_text(_pick(r, "sentiment", "user_sentiment")),
            learning_time_min=safe_float(_pick(r, "learning_time_min", "learning_time")) or 0.0,
            active_time_min=safe_float(_pick(r, "active_time_min", "active_time")) or 0.0,
            polls_seen=safe_int(_pick(r, "polls_seen", "total_polls_seen")) or 0,
            polls_responded=safe_int(_pick(r, "polls_responded", "total_polls_responded")) or 0,
            messages=safe_int(_pick(r, "messages", "total_messages")) or 0,
            hand_raises=safe_int(_pick(r, "hand_raises", "total_hand_raise")) or 0,
        )
        for r in rows
    ]


def load_reactions(rows: Iterable[Mapping]) -> List[ReactionEvent]:
    return [
        ReactionEvent(
            timestamp=_stamp(_pick(r, "timestamp", "event_datetime")),
            emotion=_text(_pick(r, "emotion")),
            user_id=_text(_pick(r, "user_id")),
        )
        for r in rows
    ]


def bundle_from_mapping(payload: Mapping) -> SessionBundle:
    """
    Build a SessionBundle from an already-parsed export document.

    Top-level sections may be spelled in camelCase or snake_case; missing
    sections become empty tuples and a missing session record becomes None.
    """

    top = _row(payload)
    meta = _pick(top, "metadata", "session", "course_session")
    return SessionBundle(
        metadata=load_metadata(meta if isinstance(meta, Mapping) else None),
        transcript=tuple(load_transcript(_records(top, "transcript", "session_transcripts"))),
        chats=tuple(load_chats(_records(top, "chats", "session_chats"))),
        activities=tuple(load_activities(_records(top, "activities", "classroom_activities"))),
        polls=tuple(load_polls(_records(top, "polls", "user_polls"))),
        students=tuple(load_students(_records(top, "students", "user_sessions"))),
        reactions=tuple(load_reactions(_records(top, "reactions", "user_reactions"))),
    )


def load_bundle(path: Path) -> SessionBundle:
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, Mapping):
        raise ValueError(f"Session export at {path} must be a JSON object.")
    return bundle_from_mapping(payload)
