# ABOUTME: Tests positive and negative feedback synthesis for activities and the whole session.
# ABOUTME: Pins explanation bands, exit-ticket protocol, call-ups, and talk-time checks.

from src.session_report.config import DEFAULT_CONFIG
from src.session_report.feedback import activity_feedback, explanation_range, session_feedback, synthesize_feedback
from src.session_report.schemas import (
    ActivityRecord,
    ActivityType,
    CorrectnessStat,
    EngagementBurst,
    FeedbackCategory,
    Polarity,
    Segment,
    SpeechLine,
)
from src.session_report.segments import TalkStats
from src.session_report.timeline import HIGH, LOW, MEDIUM, build_activity_timeline
from src.session_report.time_normalizer import format_clock

TH = DEFAULT_CONFIG.thresholds


def _entries(start, end, stat, activity_type=ActivityType.SECTION_CHECK, lines=()):
    record = ActivityRecord("a1", activity_type, format_clock(start), format_clock(end), happened=True)
    return build_activity_timeline([record], list(lines), [], {"a1": stat})


def _categories(items, polarity):
    return [i.category for i in items if i.polarity == polarity]


def test_talk_during_exit_ticket_is_negative():
    lines = [SpeechLine(520, 540, "Think about the radius")]
    entries = _entries(500, 560, CorrectnessStat(), ActivityType.EXIT_TICKET, lines)

    items = activity_feedback(entries, lines)

    [protocol] = [i for i in items if i.category == FeedbackCategory.ACTIVITY_PROTOCOL]
    assert protocol.polarity == Polarity.NEGATIVE
    assert protocol.recommended_value == "0s"
    assert protocol.actual_value == "20.0s"
    assert protocol.activity_id == "a1"


def test_short_review_after_high_correctness_is_positive():
    lines = [SpeechLine(210, 220, "Nice, most of you got it")]
    entries = _entries(100, 200, CorrectnessStat(10, 9, 90), lines=lines)

    items = activity_feedback(entries, lines)

    assert _categories(items, Polarity.POSITIVE) == [FeedbackCategory.EXPLANATION_TIME]
    assert _categories(items, Polarity.NEGATIVE) == []


def test_long_review_after_high_correctness_is_negative():
    lines = [SpeechLine(210, 250, "Let me explain it all again")]
    entries = _entries(100, 200, CorrectnessStat(10, 9, 90), lines=lines)

    [item] = activity_feedback(entries, lines)

    assert item.polarity == Polarity.NEGATIVE
    assert item.recommended_value == "<= 15s"
    assert item.actual_value == "40s"


def test_low_correctness_needs_a_longer_review():
    lines = [SpeechLine(210, 230, "Quick recap")]
    entries = _entries(100, 200, CorrectnessStat(10, 3, 30), lines=lines)

    [item] = activity_feedback(entries, lines)

    assert item.polarity == Polarity.NEGATIVE
    assert item.recommended_value == "60-120s"
    assert "only 20s" in item.text


def test_calling_a_student_up_after_high_correctness_is_negative():
    lines = [SpeechLine(205, 212, "Sara, come to the board and show us")]
    entries = _entries(100, 200, CorrectnessStat(10, 10, 100), lines=lines)

    items = activity_feedback(entries, lines)

    assert FeedbackCategory.CALLED_TO_FRONT in _categories(items, Polarity.NEGATIVE)


def test_activities_without_answers_get_no_explanation_feedback():
    lines = [SpeechLine(210, 400, "long talk")]
    entries = _entries(100, 200, CorrectnessStat(), lines=lines)
    assert activity_feedback(entries, lines) == []


def test_explanation_ranges_per_band():
    assert explanation_range(HIGH, TH) == (0.0, 15.0)
    assert explanation_range(MEDIUM, TH) == (30.0, 60.0)
    assert explanation_range(LOW, TH) == (60.0, 120.0)


def test_session_feedback_flags_long_talk_and_missing_bursts():
    talk = TalkStats(
        total_talk_sec=20 * 60,
        uninterrupted_talk_sec=20 * 60,
        longest_segment_sec=300,
        segment_count=1,
        long_segments=[Segment(0, 300)],
    )

    items = session_feedback(talk, [], student_active_pct=50)
    negatives = _categories(items, Polarity.NEGATIVE)

    assert FeedbackCategory.CONTINUOUS_TALK in negatives
    assert FeedbackCategory.TOTAL_TALK_TIME in negatives
    assert FeedbackCategory.STUDENT_ACTIVITY in negatives
    assert negatives.count(FeedbackCategory.ENGAGEMENT_BURST) == 1
    assert _categories(items, Polarity.POSITIVE) == []


def test_session_feedback_praises_balanced_lesson():
    talk = TalkStats(total_talk_sec=15 * 60, longest_segment_sec=90, segment_count=3)
    bursts = [
        EngagementBurst(100, 110, 4, overlaps_talk=True),
        EngagementBurst(900, 920, 3, overlaps_talk=False),
    ]

    items = session_feedback(talk, bursts, student_active_pct=51)

    assert _categories(items, Polarity.POSITIVE) == [
        FeedbackCategory.CONTINUOUS_TALK,
        FeedbackCategory.TOTAL_TALK_TIME,
        FeedbackCategory.STUDENT_ACTIVITY,
        FeedbackCategory.ENGAGEMENT_BURST,
    ]
    assert _categories(items, Polarity.NEGATIVE) == [FeedbackCategory.ENGAGEMENT_BURST]


def test_synthesize_splits_by_polarity():
    lines = [SpeechLine(520, 540, "hint")]
    entries = _entries(500, 560, CorrectnessStat(), ActivityType.EXIT_TICKET, lines)
    talk = TalkStats(total_talk_sec=20, longest_segment_sec=20, segment_count=1)

    positive, negative = synthesize_feedback(entries, lines, talk, [], 80)

    assert all(i.polarity == Polarity.POSITIVE for i in positive)
    assert all(i.polarity == Polarity.NEGATIVE for i in negative)
    assert FeedbackCategory.ACTIVITY_PROTOCOL in [i.category for i in negative]
