# ABOUTME: Normalizes heterogeneous timestamp strings into seconds since local midnight.
# ABOUTME: Drops rows with unparseable times instead of failing the whole report.

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, List, Optional

from .schemas import ChatMessage, SpeechLine, TimedChat, TranscriptLine

logger = logging.getLogger(__name__)

_DATE = r"(?:\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4})"
_AMPM_RE = re.compile(
    rf"^\s*(?:{_DATE}[ T,]+)?(\d{{1,2}}):(\d{{2}})(?::(\d{{2}})(?:\.\d+)?)?\s*([AaPp])\.?[Mm]\.?\s*$"
)
_HMS_RE = re.compile(rf"^\s*(?:{_DATE}[ T]+)?(\d{{1,2}}):(\d{{2}}):(\d{{2}}(?:\.\d+)?)(?:\s*(?:Z|[+-]\d{{2}}:?\d{{2}}|UTC))?\s*$")
_DATE_HM_RE = re.compile(rf"^\s*{_DATE}[ T]+(\d{{1,2}}):(\d{{2}})\s*$")


def parse_clock_seconds(value) -> Optional[float]:
    """
    Return seconds since local midnight for a timestamp, or None when no shape matches.

    Accepted shapes: "HH:MM:SS" (optionally date-prefixed, optional fraction),
    "HH:MM[:SS] AM/PM" and "date HH:MM". Numbers are taken as seconds already.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    text = str(value)

    match = _AMPM_RE.match(text)
    if match:
        hour, minute, second, meridiem = match.groups()
        hour = int(hour)
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if meridiem.lower() == "p" else 0)
        return _to_seconds(hour, int(minute), float(second or 0))

    match = _HMS_RE.match(text)
    if match:
        hour, minute, second = match.groups()
        return _to_seconds(int(hour), int(minute), float(second))

    match = _DATE_HM_RE.match(text)
    if match:
        hour, minute = match.groups()
        return _to_seconds(int(hour), int(minute), 0.0)

    return None


def _to_seconds(hour: int, minute: int, second: float) -> Optional[float]:
    if hour >= 24 or minute >= 60 or second >= 60:
        return None
    return float(hour * 3600 + minute * 60) + second


def format_clock(seconds: Optional[float]) -> str:
    if seconds is None:
        return "--:--:--"
    total = int(math.floor(seconds))
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"


def normalize_transcript(lines: Iterable[TranscriptLine]) -> List[SpeechLine]:
    """Parse line timestamps, dropping bad rows, and stable-sort by start."""

    parsed: List[SpeechLine] = []
    dropped = 0
    for line in lines:
        start = parse_clock_seconds(line.start_time)
        end = parse_clock_seconds(line.end_time)
        if start is None or end is None or end < start:
            dropped += 1
            continue
        parsed.append(SpeechLine(start_sec=start, end_sec=end, text=line.text or ""))
    if dropped:
        logger.debug("Dropped %d transcript lines with unusable timestamps", dropped)
    return sorted(parsed, key=lambda l: l.start_sec)


def normalize_chats(messages: Iterable[ChatMessage]) -> List[TimedChat]:
    timed: List[TimedChat] = []
    dropped = 0
    for msg in messages:
        ts = parse_clock_seconds(msg.timestamp)
        if ts is None:
            dropped += 1
            continue
        timed.append(
            TimedChat(timestamp_sec=ts, author_role=msg.author_role, author_id=msg.author_id, text=msg.text or "")
        )
    if dropped:
        logger.debug("Dropped %d chat messages with unusable timestamps", dropped)
    return sorted(timed, key=lambda c: c.timestamp_sec)
