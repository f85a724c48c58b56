# ABOUTME: Merges transcript lines into continuous teacher-speech segments.
# ABOUTME: Summarizes total talk time and flags over-long uninterrupted stretches.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from .config import GAP_THRESHOLD_SEC, MAX_CONTINUOUS_SEC
from .schemas import Segment, SpeechLine


@dataclass(frozen=True)
class TalkStats:
    total_talk_sec: float = 0.0
    uninterrupted_talk_sec: float = 0.0
    longest_segment_sec: float = 0.0
    segment_count: int = 0
    long_segments: List[Segment] = field(default_factory=list)


def build_segments(lines: Sequence[SpeechLine], gap_threshold_sec: float = GAP_THRESHOLD_SEC) -> List[Segment]:
    """
    Merge chronologically sorted lines into maximal runs separated by gaps above the threshold.

    A line joins the open segment when its start is at most `gap_threshold_sec`
    after the segment's current end; the end only ever moves forward.
    """

    segments: List[Segment] = []
    if not lines:
        return segments

    current_start = lines[0].start_sec
    current_end = lines[0].end_sec
    count = 1
    for line in lines[1:]:
        if line.start_sec - current_end <= gap_threshold_sec:
            current_end = max(current_end, line.end_sec)
            count += 1
            continue
        segments.append(Segment(start_sec=current_start, end_sec=current_end, line_count=count))
        current_start, current_end, count = line.start_sec, line.end_sec, 1
    segments.append(Segment(start_sec=current_start, end_sec=current_end, line_count=count))
    return segments


def summarize_talk(
    lines: Sequence[SpeechLine],
    segments: Sequence[Segment],
    max_continuous_sec: float = MAX_CONTINUOUS_SEC,
) -> TalkStats:
    # Total talk sums raw line durations, independent of how lines were merged.
    total = float(sum(line.duration_sec for line in lines))
    if not segments:
        return TalkStats(total_talk_sec=total)
    return TalkStats(
        total_talk_sec=total,
        uninterrupted_talk_sec=float(sum(seg.duration_sec for seg in segments)),
        longest_segment_sec=max(seg.duration_sec for seg in segments),
        segment_count=len(segments),
        long_segments=[seg for seg in segments if seg.duration_sec > max_continuous_sec],
    )


def overlap_seconds(lines: Sequence[SpeechLine], window_start: float, window_end: float) -> float:
    """Sum of max(0, min(end, window_end) - max(start, window_start)) over lines."""

    if window_end <= window_start:
        return 0.0
    total = 0.0
    for line in lines:
        total += max(0.0, min(line.end_sec, window_end) - max(line.start_sec, window_start))
    return total


def lines_in_window(lines: Sequence[SpeechLine], window_start: float, window_end: float) -> List[SpeechLine]:
    if window_end <= window_start:
        return []
    return [line for line in lines if line.start_sec < window_end and line.end_sec > window_start]
