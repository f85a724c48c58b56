# ABOUTME: Runs the full evaluation pipeline for one classroom session.
# ABOUTME: Assembles correctness, timeline, feedback, rubric, and summary statistics into a report.

from __future__ import annotations

import json
import logging
import re
from concurrent.futures import Executor
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .chat_signals import annotate_bursts, chat_participation_rate, detect_engagement_bursts, student_messages
from .communication import profile_communication
from .concept_mastery import STRONG, WEAK, build_concept_mastery, concepts_by_band
from .config import DEFAULT_CONFIG, EngineConfig
from .correctness import aggregate_by_activity, summarize_polls
from .engagement import engagement_timeline, rank_students, reaction_breakdown, reaction_timeline
from .feedback import synthesize_feedback
from .numeric import minutes, percent, round_half_up
from .rubric import metric_defaults, score_rubric
from .schemas import (
    ActivityTimelineEntry,
    ActivityType,
    CommunicationProfile,
    ConceptMastery,
    CorrectnessStat,
    CriterionScore,
    EngagementBurst,
    FeedbackCategory,
    FeedbackItem,
    PollSummary,
    SessionBundle,
    SessionMetadata,
    SpeechLine,
    Stamp,
    StudentSession,
)
from .segments import TalkStats, build_segments, summarize_talk
from .time_normalizer import normalize_chats, normalize_transcript, parse_clock_seconds
from .timeline import HIGH, LOW, build_activity_timeline, correctness_band, timed_activities
from .topics import extract_topics

logger = logging.getLogger(__name__)

_LEVEL_RE = re.compile(r"(?:\bgrade|\bgr\.?|\blevel|\bg|الصف|صف)\s*[-#]?\s*(\d{1,2})(?!\d)", re.IGNORECASE)
_HONORIFIC_RE = re.compile(
    r"^(?:(?:mr|mrs|ms|miss|dr|teacher|prof)\.?(?:\s+|$)|(?:الأستاذة|الاستاذة|الأستاذ|الاستاذ|أستاذة|استاذة|أستاذ|استاذ|المعلمة|المعلم|أ(?=\s))\s*)+",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SessionSummary:
    session_id: Optional[str] = None
    session_name: Optional[str] = None
    topic: str = ""
    level: Optional[str] = None
    teacher_name: Optional[str] = None
    teaching_time_min: float = 0.0
    session_temperature: Optional[float] = None


@dataclass(frozen=True)
class ActivityCorrectnessRecord:
    activity_id: str
    activity_type: ActivityType
    happened: bool
    start_time: Stamp
    end_time: Stamp
    planned_duration_sec: float
    actual_duration_sec: float
    total_questions: int
    correctness: CorrectnessStat


@dataclass(frozen=True)
class SummaryStats:
    overall_correctness_pct: int = 0
    response_rate_pct: int = 0
    teacher_talk_min: float = 0.0
    uninterrupted_talk_min: float = 0.0
    student_active_pct: int = 0
    total_students: int = 0
    avg_learning_time_min: float = 0.0
    session_completed_pct: int = 0
    planned_activities: int = 0
    happened_activities: int = 0


@dataclass(frozen=True)
class EngagementSummary:
    student_message_count: int = 0
    chat_participation_pct: int = 0
    bursts: List[EngagementBurst] = field(default_factory=list)
    reaction_breakdown: Dict[str, int] = field(default_factory=dict)
    reaction_total: int = 0
    reaction_timeline: List[Dict[str, Any]] = field(default_factory=list)
    timeline: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class SessionReport:
    summary: SessionSummary
    aggregates: SummaryStats
    activities: List[ActivityCorrectnessRecord]
    poll_stats: PollSummary
    positive_feedback: List[FeedbackItem]
    negative_feedback: List[FeedbackItem]
    criteria: List[CriterionScore]
    overall_score: float
    timeline: List[ActivityTimelineEntry]
    concept_mastery: List[ConceptMastery]
    communication: CommunicationProfile
    engagement: EngagementSummary
    students: List[StudentSession] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))


def evaluate_session(
    bundle: SessionBundle,
    config: Optional[EngineConfig] = None,
    executor: Optional[Executor] = None,
) -> SessionReport:
    """
    Evaluate one closed session snapshot and return the assembled report.

    Never raises on data problems: unusable timestamps, empty collections, or a
    missing metadata record all degrade to zero-valued sections.
    """

    config = config or DEFAULT_CONFIG
    th = config.thresholds
    metadata = bundle.metadata or SessionMetadata()
    if bundle.metadata is None:
        logger.debug("Session metadata missing; using defaults")

    lines = normalize_transcript(bundle.transcript)
    chats = normalize_chats(bundle.chats)
    segments = build_segments(lines, th.gap_threshold_sec)
    talk = summarize_talk(lines, segments, th.max_continuous_sec)

    polls = summarize_polls(list(bundle.polls))
    activity_ids = [str(a.activity_id) for a in bundle.activities]
    by_activity = aggregate_by_activity(bundle.polls, activity_ids)

    session_start = parse_clock_seconds(metadata.teacher_start_time)
    if session_start is None and lines:
        session_start = lines[0].start_sec

    entries = build_activity_timeline(
        bundle.activities, lines, chats, by_activity, session_start, config, executor=executor
    )

    bursts = annotate_bursts(
        detect_engagement_bursts(chats, th.burst_window_sec, th.burst_min_messages),
        segments,
        th.burst_talk_tolerance_sec,
    )
    students = [s for s in bundle.students if s.is_student]
    teaching_sec = _teaching_seconds(metadata, lines, bundle)
    student_active = percent(max(teaching_sec - talk.total_talk_sec, 0.0), teaching_sec)

    positive, negative = synthesize_feedback(entries, lines, talk, bursts, student_active, config)
    communication = profile_communication(lines, bundle.chats, config.patterns, talk.total_talk_sec)
    concepts = build_concept_mastery(entries, th)

    avg_learning = float(np.mean([s.learning_time_min or 0.0 for s in students])) if students else 0.0
    aggregates = SummaryStats(
        overall_correctness_pct=polls.correctness_percent,
        response_rate_pct=polls.response_rate_percent,
        teacher_talk_min=minutes(talk.total_talk_sec),
        uninterrupted_talk_min=minutes(talk.uninterrupted_talk_sec),
        student_active_pct=student_active,
        total_students=len(students),
        avg_learning_time_min=round_half_up(avg_learning, 1),
        session_completed_pct=percent(avg_learning, metadata.teaching_time_min or 0.0),
        planned_activities=len(bundle.activities),
        happened_activities=sum(1 for a in bundle.activities if a.happened),
    )

    student_chat_count = len(student_messages(bundle.chats))
    engagement = EngagementSummary(
        student_message_count=student_chat_count,
        chat_participation_pct=chat_participation_rate(bundle.chats, students),
        bursts=bursts,
        reaction_breakdown=reaction_breakdown(bundle.reactions),
        reaction_total=len(bundle.reactions),
        reaction_timeline=reaction_timeline(bundle.reactions),
        timeline=engagement_timeline(chats, bundle.reactions),
    )

    metrics = collect_metrics(
        bundle=bundle,
        metadata=metadata,
        config=config,
        lines=lines,
        talk=talk,
        polls=polls,
        entries=entries,
        bursts=bursts,
        negative=negative,
        communication=communication,
        concepts=concepts,
        aggregates=aggregates,
        engagement=engagement,
    )
    criteria, overall_score = score_rubric(metrics, entries, concepts)

    report = SessionReport(
        summary=summarize_session(metadata, bundle, lines, th.fallback_topic, config),
        aggregates=aggregates,
        activities=[
            ActivityCorrectnessRecord(
                activity_id=str(a.activity_id),
                activity_type=a.activity_type,
                happened=bool(a.happened),
                start_time=a.start_time,
                end_time=a.end_time,
                planned_duration_sec=float(a.planned_duration_sec or 0.0),
                actual_duration_sec=float(a.actual_duration_sec or 0.0),
                total_questions=int(a.total_questions or 0),
                correctness=by_activity[str(a.activity_id)],
            )
            for a in bundle.activities
        ],
        poll_stats=polls,
        positive_feedback=positive,
        negative_feedback=negative,
        criteria=criteria,
        overall_score=overall_score,
        timeline=entries,
        concept_mastery=concepts,
        communication=communication,
        engagement=engagement,
        students=rank_students(bundle.students),
    )
    logger.debug(
        "Evaluated session %s: %d timeline entries, %d/%d feedback items, score %.1f",
        metadata.session_id,
        len(entries),
        len(positive),
        len(negative),
        overall_score,
    )
    return report


def collect_metrics(
    bundle: SessionBundle,
    metadata: SessionMetadata,
    config: EngineConfig,
    lines: Sequence[SpeechLine],
    talk: TalkStats,
    polls: PollSummary,
    entries: Sequence[ActivityTimelineEntry],
    bursts: Sequence[EngagementBurst],
    negative: Sequence[FeedbackItem],
    communication: CommunicationProfile,
    concepts: Sequence[ConceptMastery],
    aggregates: SummaryStats,
    engagement: EngagementSummary,
) -> Dict[str, Any]:
    """Flatten every derived signal the rubric rules and evidence templates read."""

    th = config.thresholds
    metrics = metric_defaults()

    pos_users, neg_users = _sentiment_counts(metadata, bundle)
    answered_entries = [e for e in entries if e.correctness.answered_count > 0]
    ratios = [e.duration_ratio for e in entries if e.duration_ratio is not None]
    on_plan = [r for r in ratios if th.duration_ratio_low <= r <= th.duration_ratio_high]
    exit_talk = [e for e in entries if e.activity_type == ActivityType.EXIT_TICKET and e.teacher_talk_during]
    bands = concepts_by_band(concepts)
    happened = [a for a in bundle.activities if a.happened]

    metrics.update(
        {
            "answered_count": polls.total_answered,
            "overall_correctness": polls.correctness_percent,
            "response_rate": polls.response_rate_percent,
            "student_message_count": engagement.student_message_count,
            "chat_participation_rate": engagement.chat_participation_pct,
            "session_temperature": metadata.session_temperature,
            "burst_count": len(bursts),
            "bursts_during_talk": sum(1 for b in bursts if b.overlaps_talk),
            "sentiment_total": pos_users + neg_users,
            "sentiment_ratio": percent(pos_users, pos_users + neg_users),
            "line_count": len(lines),
            "encouragement_count": communication.encouragement_count,
            "question_count": communication.question_count,
            "questions_per_10_min": communication.questions_per_10_min,
            "clarity_marker_count": communication.clarity_marker_count,
            "teacher_chat_count": communication.teacher_chat_count,
            "confusion_activity_count": sum(1 for e in entries if e.confusion_detected),
            "teacher_talk_min": aggregates.teacher_talk_min,
            "max_total_talk_min": th.max_total_talk_min,
            "max_continuous_sec": int(th.max_continuous_sec),
            "long_segment_count": len(talk.long_segments),
            "longest_segment_sec": int(round_half_up(talk.longest_segment_sec)),
            "timed_activity_count": len(entries),
            "on_plan_pct": percent(len(on_plan), len(ratios)),
            "explanation_negatives": sum(1 for i in negative if i.category == FeedbackCategory.EXPLANATION_TIME),
            "student_active_pct": aggregates.student_active_pct,
            "student_active_target_pct": th.student_active_target_pct,
            "self_correction_count": communication.self_correction_count,
            "exit_ticket_talk_count": len(exit_talk),
            "exit_ticket_talk_sec": round_half_up(sum(e.talk_during_sec for e in exit_talk), 1),
            "unnecessary_call_ups": sum(1 for i in negative if i.category == FeedbackCategory.CALLED_TO_FRONT),
            "insufficient_explanations": sum(1 for e in entries if e.explanation_calibration == "insufficient"),
            "high_correctness_activities": sum(
                1 for e in answered_entries if correctness_band(e.correctness.percent, th) == HIGH
            ),
            "high_correctness_pct": int(th.high_correctness_pct),
            "unresolved_confusion": sum(
                1
                for e in answered_entries
                if e.confusion_detected and correctness_band(e.correctness.percent, th) == LOW
            ),
            "planned_activity_count": len(bundle.activities),
            "happened_activity_count": len(happened),
            "completion_rate": percent(len(happened), len(bundle.activities)),
            "exit_ticket_happened": any(a.activity_type == ActivityType.EXIT_TICKET for a in happened),
            "concepts_taught": len(concepts),
            "strong_concepts": len(bands[STRONG]),
            "weak_concepts": len(bands[WEAK]),
            "strong_concept_names": ", ".join(bands[STRONG]),
            "weak_concept_names": ", ".join(bands[WEAK]),
        }
    )
    return metrics


def summarize_session(
    metadata: SessionMetadata,
    bundle: SessionBundle,
    lines: Sequence[SpeechLine],
    fallback_topic: str,
    config: EngineConfig,
) -> SessionSummary:
    name = (metadata.session_name or "").strip()
    level = extract_level(name)
    topic = clean_topic(name)
    if not topic:
        topic = extract_topics([l.text for l in lines], config.patterns.compiled("topics"), fallback_topic)

    teacher = metadata.teacher_name
    if not teacher:
        teacher = next(
            (s.user_name for s in bundle.students if not s.is_student and (s.user_type or "").upper() == "TEACHER"),
            None,
        )
    return SessionSummary(
        session_id=metadata.session_id,
        session_name=metadata.session_name,
        topic=topic,
        level=level,
        teacher_name=normalize_teacher_name(teacher),
        teaching_time_min=round_half_up(float(metadata.teaching_time_min or 0.0), 1),
        session_temperature=metadata.session_temperature,
    )


def extract_level(name: str) -> Optional[str]:
    match = _LEVEL_RE.search(_spaced(name))
    return f"Grade {int(match.group(1))}" if match else None


def clean_topic(name: str) -> str:
    cleaned = _LEVEL_RE.sub(" ", _spaced(name))
    cleaned = re.sub(r"\b\d{3,}\b", " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip(" -:,.")


def _spaced(name: Optional[str]) -> str:
    return re.sub(r"[_|]+", " ", name or "")


def normalize_teacher_name(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    name = re.sub(r"[_.]+", " ", str(raw).strip())
    name = _HONORIFIC_RE.sub("", name.strip())
    name = re.sub(r"\s+", " ", name).strip()
    if not name:
        return None
    return " ".join(word.capitalize() if word.isascii() else word for word in name.split(" "))


def _teaching_seconds(metadata: SessionMetadata, lines: Sequence[SpeechLine], bundle: SessionBundle) -> float:
    if metadata.teaching_time_min and metadata.teaching_time_min > 0:
        return float(metadata.teaching_time_min) * 60.0
    # Fall back to the span covered by speech and activities.
    starts = [l.start_sec for l in lines]
    ends = [l.end_sec for l in lines]
    for activity in timed_activities(bundle.activities):
        starts.append(activity.start_sec)
        ends.append(activity.end_sec)
    if not starts:
        return 0.0
    return max(ends) - min(starts)


def _sentiment_counts(metadata: SessionMetadata, bundle: SessionBundle):
    pos = int(metadata.positive_users or 0)
    neg = int(metadata.negative_users or 0)
    if pos or neg:
        return pos, neg
    for student in bundle.students:
        if not student.is_student:
            continue
        sentiment = (student.sentiment or "").strip().lower()
        if sentiment == "positive":
            pos += 1
        elif sentiment == "negative":
            neg += 1
    return pos, neg


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def report_to_json(report: SessionReport, indent: Optional[int] = 2) -> str:
    """Serialize deterministically: identical inputs produce identical text."""

    return json.dumps(report.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False)
