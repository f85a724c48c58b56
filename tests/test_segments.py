# ABOUTME: Tests merging transcript lines into continuous speech segments.
# ABOUTME: Covers the gap threshold boundary, talk totals, and window overlap helpers.

import pytest

from src.session_report.schemas import SpeechLine
from src.session_report.segments import build_segments, lines_in_window, overlap_seconds, summarize_talk


def _lines(*spans):
    return [SpeechLine(start, end, f"line {i}") for i, (start, end) in enumerate(spans)]


def test_small_gaps_merge_and_large_gaps_split():
    lines = _lines((0, 40), (42, 70), (100, 120))

    segments = build_segments(lines, gap_threshold_sec=5)

    assert [(s.start_sec, s.end_sec, s.line_count) for s in segments] == [(0, 70, 2), (100, 120, 1)]


def test_gap_equal_to_threshold_still_merges():
    segments = build_segments(_lines((0, 10), (15, 20)), gap_threshold_sec=5)
    assert len(segments) == 1
    assert segments[0].end_sec == 20


def test_nested_line_does_not_pull_segment_end_backwards():
    segments = build_segments(_lines((0, 60), (10, 20), (64, 70)), gap_threshold_sec=5)
    assert [(s.start_sec, s.end_sec) for s in segments] == [(0, 70)]


def test_segments_are_sorted_and_disjoint():
    lines = _lines((0, 3), (9, 12), (12, 30), (50, 51), (52, 90), (200, 260))
    segments = build_segments(lines, gap_threshold_sec=5)

    for earlier, later in zip(segments, segments[1:]):
        assert earlier.end_sec < later.start_sec
        assert earlier.start_sec <= earlier.end_sec


def test_empty_transcript_has_no_segments_or_talk():
    assert build_segments([]) == []
    talk = summarize_talk([], [])
    assert talk.total_talk_sec == 0.0
    assert talk.long_segments == []


def test_summarize_talk_totals_and_long_segments():
    lines = _lines((0, 40), (42, 70), (100, 120))
    segments = build_segments(lines, gap_threshold_sec=5)

    talk = summarize_talk(lines, segments, max_continuous_sec=60)

    assert talk.total_talk_sec == pytest.approx(88.0)
    assert talk.uninterrupted_talk_sec == pytest.approx(90.0)
    assert talk.longest_segment_sec == 70
    assert talk.segment_count == 2
    assert [(s.start_sec, s.end_sec) for s in talk.long_segments] == [(0, 70)]


def test_overlap_and_window_selection():
    lines = _lines((0, 40), (42, 70), (100, 120))

    assert overlap_seconds(lines, 30, 50) == pytest.approx(18.0)
    assert overlap_seconds(lines, 70, 100) == 0.0
    assert overlap_seconds(lines, 50, 50) == 0.0
    assert [l.text for l in lines_in_window(lines, 30, 50)] == ["line 0", "line 1"]
    assert lines_in_window(lines, 70, 100) == []
