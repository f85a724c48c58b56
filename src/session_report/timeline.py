# ABOUTME: Correlates teacher speech, chat, and poll outcomes around each activity.
# ABOUTME: Builds per-activity pre/during/post teaching windows with calibration insights.

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, EngineConfig, ReportThresholds
from .chat_signals import detect_confusion
from .numeric import round_half_up
from .schemas import (
    ActivityRecord,
    ActivityTimelineEntry,
    ActivityType,
    CorrectnessStat,
    Insight,
    SpeechLine,
    TeachingWindow,
    TimedChat,
)
from .segments import lines_in_window, overlap_seconds
from .time_normalizer import format_clock, parse_clock_seconds
from .topics import extract_topics

logger = logging.getLogger(__name__)

HIGH = "high"
MEDIUM = "medium"
LOW = "low"

DURATION = "duration"
CALIBRATION = "calibration"
PROTOCOL = "protocol"
CONFUSION = "confusion"


@dataclass(frozen=True)
class TimedActivity:
    record: ActivityRecord
    start_sec: float
    end_sec: float


def timed_activities(activities: Sequence[ActivityRecord]) -> List[TimedActivity]:
    """Happened activities with usable timestamps, stable-sorted by start."""

    timed: List[TimedActivity] = []
    for activity in activities:
        if not activity.happened:
            continue
        start = parse_clock_seconds(activity.start_time)
        end = parse_clock_seconds(activity.end_time)
        if start is None or end is None or end < start:
            logger.debug("Activity %s has no usable time window; skipping", activity.activity_id)
            continue
        timed.append(TimedActivity(record=activity, start_sec=start, end_sec=end))
    return sorted(timed, key=lambda t: t.start_sec)


def correctness_band(value: float, thresholds: ReportThresholds) -> str:
    if value > thresholds.high_correctness_pct:
        return HIGH
    if value >= thresholds.low_correctness_pct:
        return MEDIUM
    return LOW


def explanation_calibration(
    pre_teaching_sec: float, correctness: CorrectnessStat, thresholds: ReportThresholds
) -> Optional[str]:
    """Classify pre-activity explanation time as well-calibrated, insufficient, or excessive."""

    if correctness.answered_count == 0:
        return None
    band = correctness_band(correctness.percent, thresholds)
    if band == HIGH:
        return "excessive" if pre_teaching_sec > thresholds.excessive_pre_sec else "well-calibrated"
    if band == MEDIUM:
        return "insufficient" if pre_teaching_sec < thresholds.calibrated_min_pre_sec else "well-calibrated"
    return "excessive" if pre_teaching_sec >= thresholds.excessive_pre_sec else "insufficient"


def teaching_window(
    lines: Sequence[SpeechLine], start: float, end: float, topic_table, fallback: str
) -> TeachingWindow:
    end = max(start, end)
    window_lines = lines_in_window(lines, start, end)
    return TeachingWindow(
        start_sec=start,
        end_sec=end,
        duration_sec=overlap_seconds(window_lines, start, end),
        topics=extract_topics([l.text for l in window_lines], topic_table, fallback) if window_lines else fallback,
        line_count=len(window_lines),
    )


def build_activity_timeline(
    activities: Sequence[ActivityRecord],
    lines: Sequence[SpeechLine],
    chats: Sequence[TimedChat],
    correctness_by_activity: Mapping[str, CorrectnessStat],
    session_start_sec: Optional[float] = None,
    config: EngineConfig = DEFAULT_CONFIG,
    executor: Optional[Executor] = None,
) -> List[ActivityTimelineEntry]:
    """
    Build one timeline entry per happened, timestamped activity in start order.

    Entries only read shared inputs, so an executor may build them concurrently;
    results keep activity order.
    """

    timed = timed_activities(activities)
    jobs: List[Tuple] = []
    for idx, activity in enumerate(timed):
        prev_end = timed[idx - 1].end_sec if idx > 0 else session_start_sec
        next_start = timed[idx + 1].start_sec if idx + 1 < len(timed) else None
        stat = correctness_by_activity.get(str(activity.record.activity_id), CorrectnessStat())
        jobs.append((activity, prev_end, next_start, stat, lines, chats, config))

    if executor is not None:
        return list(executor.map(_build_entry_job, jobs))
    return [_build_entry_job(job) for job in jobs]


def _build_entry_job(job: Tuple) -> ActivityTimelineEntry:
    return build_entry(*job)


def build_entry(
    activity: TimedActivity,
    prev_end: Optional[float],
    next_start: Optional[float],
    correctness: CorrectnessStat,
    lines: Sequence[SpeechLine],
    chats: Sequence[TimedChat],
    config: EngineConfig = DEFAULT_CONFIG,
) -> ActivityTimelineEntry:
    th = config.thresholds
    topic_table = config.patterns.compiled("topics")
    start, end = activity.start_sec, activity.end_sec
    record = activity.record

    pre_start = start - th.pre_window_sec
    if prev_end is not None:
        pre_start = max(pre_start, prev_end)
    pre = teaching_window(lines, pre_start, start, topic_table, th.fallback_topic)

    talk_during = overlap_seconds(lines, start, end)

    post_end = next_start if next_start is not None else end + th.post_window_sec
    post = teaching_window(lines, end, post_end, topic_table, th.fallback_topic)

    confused, examples = detect_confusion(
        chats,
        start - th.confusion_lead_sec,
        end + th.confusion_trail_sec,
        config.patterns.compiled("confusion"),
        th.confusion_max_examples,
    )

    planned = float(record.planned_duration_sec or 0.0)
    actual = float(record.actual_duration_sec or 0.0) or (end - start)
    ratio = round_half_up(actual / planned, 2) if planned > 0 else None

    entry = ActivityTimelineEntry(
        activity_id=str(record.activity_id),
        activity_type=record.activity_type,
        start_sec=start,
        end_sec=end,
        start_label=format_clock(start),
        pre_teaching=pre,
        teacher_talk_during=talk_during > 0,
        talk_during_sec=round_half_up(talk_during, 1),
        post_teaching=post,
        correctness=correctness,
        confusion_detected=confused,
        confusion_examples=examples,
        planned_duration_sec=planned,
        actual_duration_sec=actual,
        duration_ratio=ratio,
        explanation_calibration=explanation_calibration(pre.duration_sec, correctness, th),
    )
    entry.insights = activity_insights(entry, th)
    return entry


def activity_insights(entry: ActivityTimelineEntry, th: ReportThresholds) -> List[Insight]:
    label = f"{_type_label(entry.activity_type)} at {entry.start_label}"
    insights: List[Insight] = []

    if entry.duration_ratio is not None:
        planned_min = round_half_up(entry.planned_duration_sec / 60.0, 1)
        actual_min = round_half_up(entry.actual_duration_sec / 60.0, 1)
        if entry.duration_ratio < th.duration_ratio_low:
            text = f"{label} finished well under plan ({actual_min} of {planned_min} planned minutes)."
        elif entry.duration_ratio > th.duration_ratio_high:
            text = f"{label} ran over plan ({actual_min} of {planned_min} planned minutes)."
        else:
            text = f"{label} stayed close to its planned duration."
        insights.append(Insight(kind=DURATION, text=text))

    pre_sec = int(round_half_up(entry.pre_teaching.duration_sec))
    pct = entry.correctness.percent
    if entry.explanation_calibration == "well-calibrated":
        text = f"Explanation before {label} ({pre_sec}s on {entry.pre_teaching.topics}) was well-calibrated: {pct}% correct."
    elif entry.explanation_calibration == "insufficient":
        text = f"Explanation before {label} was insufficient: only {pre_sec}s of teaching preceded {pct}% correctness."
    elif entry.explanation_calibration == "excessive":
        text = f"Explanation before {label} was excessive: {pre_sec}s of teaching for {pct}% correctness."
    else:
        text = f"No answered questions for {label}, so explanation time cannot be judged."
    insights.append(Insight(kind=CALIBRATION, text=text))

    if entry.teacher_talk_during and entry.activity_type == ActivityType.EXIT_TICKET:
        insights.append(
            Insight(
                kind=PROTOCOL,
                text=f"Teacher spoke for {entry.talk_during_sec}s during the exit ticket at {entry.start_label}; "
                "its results may not reflect independent work.",
            )
        )
    if entry.confusion_detected:
        insights.append(Insight(kind=CONFUSION, text=f"Students signalled confusion around {label}."))
    return insights


def _type_label(activity_type: ActivityType) -> str:
    return {
        ActivityType.SECTION_CHECK: "Section check",
        ActivityType.TEAM_EXERCISE: "Team exercise",
        ActivityType.EXIT_TICKET: "Exit ticket",
    }[activity_type]
