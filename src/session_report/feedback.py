# ABOUTME: Synthesizes positive and negative observations from timeline and talk statistics.
# ABOUTME: Applies per-activity explanation-time bands and session-level pedagogy checks.

from __future__ import annotations

from typing import List, Sequence, Tuple

from .config import DEFAULT_CONFIG, EngineConfig, ReportThresholds
from .numeric import minutes, round_half_up
from .schemas import (
    ActivityTimelineEntry,
    ActivityType,
    EngagementBurst,
    FeedbackCategory,
    FeedbackItem,
    Polarity,
    SpeechLine,
)
from .segments import TalkStats, lines_in_window, overlap_seconds
from .time_normalizer import format_clock
from .timeline import HIGH, MEDIUM, correctness_band


def _positive(category: FeedbackCategory, text: str, activity_id=None) -> FeedbackItem:
    return FeedbackItem(category=category, polarity=Polarity.POSITIVE, text=text, activity_id=activity_id)


def _negative(
    category: FeedbackCategory, text: str, recommended: str, actual: str, activity_id=None
) -> FeedbackItem:
    return FeedbackItem(
        category=category,
        polarity=Polarity.NEGATIVE,
        text=text,
        activity_id=activity_id,
        recommended_value=recommended,
        actual_value=actual,
    )


def explanation_range(band: str, th: ReportThresholds) -> Tuple[float, float]:
    """Acceptable post-activity explanation seconds for a correctness band."""

    if band == HIGH:
        return 0.0, th.high_band_max_explain_sec
    if band == MEDIUM:
        return th.medium_band_min_explain_sec, th.medium_band_max_explain_sec
    return th.low_band_min_explain_sec, th.low_band_max_explain_sec


def activity_feedback(
    entries: Sequence[ActivityTimelineEntry],
    lines: Sequence[SpeechLine],
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[FeedbackItem]:
    th = config.thresholds
    called_table = config.patterns.compiled("called_to_front")
    by_end = sorted(entries, key=lambda e: e.end_sec)
    items: List[FeedbackItem] = []

    for idx, entry in enumerate(by_end):
        label = f"the activity at {entry.start_label}"

        if entry.activity_type == ActivityType.EXIT_TICKET and entry.teacher_talk_during:
            items.append(
                _negative(
                    FeedbackCategory.ACTIVITY_PROTOCOL,
                    f"You spoke for {entry.talk_during_sec}s during the exit ticket at {entry.start_label}. "
                    "Exit tickets need independent work to measure understanding.",
                    recommended="0s",
                    actual=f"{entry.talk_during_sec}s",
                    activity_id=entry.activity_id,
                )
            )

        if entry.correctness.answered_count == 0:
            continue

        next_start = by_end[idx + 1].start_sec if idx + 1 < len(by_end) else entry.end_sec + th.post_window_sec
        explain_sec = round_half_up(overlap_seconds(lines, entry.end_sec, next_start))
        pct = entry.correctness.percent
        band = correctness_band(pct, th)
        low, high = explanation_range(band, th)
        recommended = f"<= {int(high)}s" if band == HIGH else f"{int(low)}-{int(high)}s"

        if low <= explain_sec <= high:
            items.append(
                _positive(
                    FeedbackCategory.EXPLANATION_TIME,
                    f"Explanation after {label} ({int(explain_sec)}s) fit the {pct}% correctness.",
                    activity_id=entry.activity_id,
                )
            )
        elif explain_sec > high:
            items.append(
                _negative(
                    FeedbackCategory.EXPLANATION_TIME,
                    f"Explanation after {label} ran {int(explain_sec)}s although correctness was {pct}%; "
                    "shorten the review.",
                    recommended=recommended,
                    actual=f"{int(explain_sec)}s",
                    activity_id=entry.activity_id,
                )
            )
        else:
            items.append(
                _negative(
                    FeedbackCategory.EXPLANATION_TIME,
                    f"Explanation after {label} lasted only {int(explain_sec)}s with {pct}% correctness; "
                    "revisit the misconception before moving on.",
                    recommended=recommended,
                    actual=f"{int(explain_sec)}s",
                    activity_id=entry.activity_id,
                )
            )

        if band == HIGH:
            post_lines = lines_in_window(lines, entry.end_sec, next_start)
            if any(pattern.search(l.text) for l in post_lines for pattern, _ in called_table):
                items.append(
                    _negative(
                        FeedbackCategory.CALLED_TO_FRONT,
                        f"A student was called to the front after {label} even though {pct}% answered correctly.",
                        recommended="no call-up",
                        actual="student called up",
                        activity_id=entry.activity_id,
                    )
                )
    return items


def session_feedback(
    talk: TalkStats,
    bursts: Sequence[EngagementBurst],
    student_active_pct: int,
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[FeedbackItem]:
    th = config.thresholds
    items: List[FeedbackItem] = []

    if not talk.long_segments:
        items.append(
            _positive(
                FeedbackCategory.CONTINUOUS_TALK,
                f"No stretch of uninterrupted talk exceeded {int(th.max_continuous_sec)}s.",
            )
        )
    else:
        longest = int(round_half_up(talk.longest_segment_sec))
        items.append(
            _negative(
                FeedbackCategory.CONTINUOUS_TALK,
                f"{len(talk.long_segments)} stretch(es) of uninterrupted talk exceeded "
                f"{int(th.max_continuous_sec)}s; the longest ran {longest}s. Break them up with questions.",
                recommended=f"<= {int(th.max_continuous_sec)}s",
                actual=f"{longest}s",
            )
        )

    talk_min = minutes(talk.total_talk_sec)
    if talk.total_talk_sec <= th.max_total_talk_min * 60:
        items.append(
            _positive(
                FeedbackCategory.TOTAL_TALK_TIME,
                f"Total teacher talk of {talk_min} minutes stayed within {th.max_total_talk_min:g} minutes.",
            )
        )
    else:
        items.append(
            _negative(
                FeedbackCategory.TOTAL_TALK_TIME,
                f"Total teacher talk reached {talk_min} minutes, above the {th.max_total_talk_min:g}-minute ceiling.",
                recommended=f"<= {th.max_total_talk_min:g} min",
                actual=f"{talk_min} min",
            )
        )

    if student_active_pct > th.student_active_target_pct:
        items.append(
            _positive(
                FeedbackCategory.STUDENT_ACTIVITY,
                f"Students were active for {student_active_pct}% of the lesson.",
            )
        )
    else:
        items.append(
            _negative(
                FeedbackCategory.STUDENT_ACTIVITY,
                f"Students were active for only {student_active_pct}% of the lesson.",
                recommended=f"> {th.student_active_target_pct:g}%",
                actual=f"{student_active_pct}%",
            )
        )

    if not bursts:
        items.append(
            _negative(
                FeedbackCategory.ENGAGEMENT_BURST,
                "No bursts of student chat activity were observed.",
                recommended=f">= 1 burst of {th.burst_min_messages}+ messages in {int(th.burst_window_sec)}s",
                actual="0 bursts",
            )
        )
    for burst in bursts:
        at = format_clock(burst.start_sec)
        if burst.overlaps_talk:
            items.append(
                _positive(
                    FeedbackCategory.ENGAGEMENT_BURST,
                    f"Students responded in chat while you were explaining ({burst.message_count} messages at {at}).",
                )
            )
        else:
            items.append(
                _negative(
                    FeedbackCategory.ENGAGEMENT_BURST,
                    f"A chat burst at {at} ({burst.message_count} messages) got no spoken response.",
                    recommended=f"speak within {int(th.burst_talk_tolerance_sec)}s",
                    actual="no teacher speech nearby",
                )
            )
    return items


def synthesize_feedback(
    entries: Sequence[ActivityTimelineEntry],
    lines: Sequence[SpeechLine],
    talk: TalkStats,
    bursts: Sequence[EngagementBurst],
    student_active_pct: int,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Tuple[List[FeedbackItem], List[FeedbackItem]]:
    items = activity_feedback(entries, lines, config) + session_feedback(talk, bursts, student_active_pct, config)
    positive = [i for i in items if i.polarity == Polarity.POSITIVE]
    negative = [i for i in items if i.polarity == Polarity.NEGATIVE]
    return positive, negative
