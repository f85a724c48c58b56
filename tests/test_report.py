# ABOUTME: Tests the full session evaluation pipeline on a small synthetic lesson.
# ABOUTME: Checks aggregates, summary normalization, feedback, determinism, and empty inputs.

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import pytest

from src.session_report.report import (
    clean_topic,
    evaluate_session,
    extract_level,
    normalize_teacher_name,
    report_to_json,
)
from src.session_report.schemas import (
    ActivityRecord,
    ActivityType,
    AuthorRole,
    ChatMessage,
    FeedbackCategory,
    PollResponse,
    ReactionEvent,
    SessionBundle,
    SessionMetadata,
    StudentSession,
    TranscriptLine,
)


def _lesson(metadata=True, teacher_row_name="Ms. Sara Khan"):
    meta = SessionMetadata(
        session_id="S1",
        session_name="Grade 7 - Circles",
        teacher_name="Ms. sara_khan",
        teacher_start_time="10:00:00",
        teaching_time_min=20.0,
        session_temperature=80.0,
        positive_users=8,
        negative_users=2,
    )
    transcript = (
        TranscriptLine("10:00:00", "10:01:00", "Today we study the radius of a circle. What is the radius?"),
        TranscriptLine("10:01:02", "10:02:00", "Excellent! The diameter is twice the radius."),
        TranscriptLine("10:05:10", "10:05:20", "Well done everyone"),
        TranscriptLine("10:10:20", "10:10:40", "Remember the area formula"),
    )
    activities = (
        ActivityRecord("A1", ActivityType.SECTION_CHECK, "10:03:00", "10:05:00", True, 120, 120, 2),
        ActivityRecord("A2", ActivityType.EXIT_TICKET, "10:10:00", "10:12:00", True, 120, 0, 2),
        ActivityRecord("A3", ActivityType.TEAM_EXERCISE, None, None, False, 300, 0, 0),
    )
    polls = tuple(
        [PollResponse("q1", "A1", True, True, True, user_id=f"s{i}") for i in range(1, 5)]
        + [PollResponse("q2", "A2", True, True, i <= 2, user_id=f"s{i}") for i in range(1, 5)]
        + [PollResponse("q2", "A2", True, False, False, user_id="s5")]
    )
    students = tuple(
        StudentSession(f"s{i}", f"Student {i}", "STUDENT", learning_time_min=minutes)
        for i, minutes in zip(range(1, 5), (18, 20, 16, 18))
    ) + (StudentSession("t1", teacher_row_name, "TEACHER"),)
    chats = (
        ChatMessage("10:03:10", AuthorRole.STUDENT, "s1", "got it"),
        ChatMessage("10:03:20", AuthorRole.STUDENT, "s2", "I'm confused"),
        ChatMessage("10:03:25", AuthorRole.STUDENT, "s3", "??"),
    )
    return SessionBundle(
        metadata=meta if metadata else None,
        transcript=transcript,
        chats=chats,
        activities=activities,
        polls=polls,
        students=students,
    )


def test_aggregates_for_small_lesson():
    report = evaluate_session(_lesson())
    stats = report.aggregates

    assert stats.overall_correctness_pct == 75
    assert stats.response_rate_pct == 89
    assert stats.teacher_talk_min == pytest.approx(2.5)
    assert stats.student_active_pct == 88
    assert stats.total_students == 4
    assert stats.avg_learning_time_min == pytest.approx(18.0)
    assert stats.session_completed_pct == 90
    assert stats.planned_activities == 3
    assert stats.happened_activities == 2


def test_summary_is_normalized():
    summary = evaluate_session(_lesson()).summary

    assert summary.session_id == "S1"
    assert summary.topic == "Circles"
    assert summary.level == "Grade 7"
    assert summary.teacher_name == "Sara Khan"
    assert summary.teaching_time_min == 20.0


def test_activity_records_and_timeline():
    report = evaluate_session(_lesson())

    assert [a.activity_id for a in report.activities] == ["A1", "A2", "A3"]
    assert report.activities[0].correctness.percent == 100
    assert report.activities[1].correctness.percent == 50
    assert report.activities[2].correctness.answered_count == 0

    first, second = report.timeline
    assert first.pre_teaching.topics == "radius, diameter"
    assert first.pre_teaching.duration_sec == pytest.approx(118.0)
    assert first.confusion_detected is True
    assert first.confusion_examples == ["I'm confused", "??"]
    assert first.explanation_calibration == "well-calibrated"
    assert second.teacher_talk_during is True
    assert second.talk_during_sec == pytest.approx(20.0)
    assert second.explanation_calibration == "insufficient"


def test_feedback_for_small_lesson():
    report = evaluate_session(_lesson())

    assert [i.category for i in report.positive_feedback] == [
        FeedbackCategory.EXPLANATION_TIME,
        FeedbackCategory.CONTINUOUS_TALK,
        FeedbackCategory.TOTAL_TALK_TIME,
        FeedbackCategory.STUDENT_ACTIVITY,
    ]
    assert [i.category for i in report.negative_feedback] == [
        FeedbackCategory.ACTIVITY_PROTOCOL,
        FeedbackCategory.EXPLANATION_TIME,
        FeedbackCategory.ENGAGEMENT_BURST,
    ]


def test_concepts_engagement_and_scores():
    report = evaluate_session(_lesson())

    assert [(c.concept, c.band) for c in report.concept_mastery] == [("radius", "strong"), ("diameter", "strong")]
    assert report.engagement.student_message_count == 3
    assert report.engagement.chat_participation_pct == 75
    assert len(report.engagement.bursts) == 1
    assert report.engagement.bursts[0].overlaps_talk is False
    assert report.poll_stats.total_polls == 9
    assert len(report.criteria) == 9
    assert report.criteria[-1].id == "overall"
    assert all(c.score in {1.0 + 0.5 * i for i in range(9)} for c in report.criteria)
    assert 1.0 <= report.overall_score <= 5.0
    instructional = next(c for c in report.criteria if c.id == "instructional_errors")
    assert any("exit ticket" in e for e in instructional.evidence)


def test_report_json_is_deterministic():
    bundle = _lesson()

    first = report_to_json(evaluate_session(bundle))
    second = report_to_json(evaluate_session(bundle))
    with ThreadPoolExecutor(max_workers=2) as pool:
        threaded = report_to_json(evaluate_session(bundle, executor=pool))

    assert first == second == threaded
    payload = json.loads(first)
    assert payload["activities"][0]["activity_type"] == "SectionCheck"
    assert payload["negative_feedback"][0]["polarity"] == "negative"
    assert payload["summary"]["level"] == "Grade 7"


def test_missing_metadata_falls_back_to_rows_and_transcript():
    report = evaluate_session(_lesson(metadata=False, teacher_row_name="أستاذة منى"))

    assert report.summary.session_id is None
    assert report.summary.teacher_name == "منى"
    assert report.summary.topic == "radius, diameter, area"
    assert report.summary.level is None
    assert report.aggregates.session_completed_pct == 0
    assert 0 <= report.aggregates.student_active_pct <= 100


def test_empty_bundle_produces_well_formed_report():
    report = evaluate_session(SessionBundle())

    assert report.aggregates.overall_correctness_pct == 0
    assert report.aggregates.teacher_talk_min == 0.0
    assert report.timeline == []
    assert report.concept_mastery == []
    assert report.summary.topic == "general instruction"
    assert len(report.criteria) == 9
    assert json.loads(report_to_json(report))["overall_score"] == report.overall_score


@pytest.mark.parametrize(
    "name,level,topic",
    [
        ("Grade 7 - Circles", "Grade 7", "Circles"),
        ("G5_Area of Circles_12345", "Grade 5", "Area of Circles"),
        ("Circles | Level 10", "Grade 10", "Circles"),
        ("الصف 8 الدائرة", "Grade 8", "الدائرة"),
        ("Circumference review", None, "Circumference review"),
    ],
)
def test_level_and_topic_parsing(name, level, topic):
    assert extract_level(name) == level
    assert clean_topic(name) == topic


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Mr. ahmed_ali", "Ahmed Ali"),
        ("  Dr   LAYLA   hassan ", "Layla Hassan"),
        ("الأستاذ محمد", "محمد"),
        ("Mr.", None),
        (None, None),
    ],
)
def test_teacher_name_normalization(raw, expected):
    assert normalize_teacher_name(raw) == expected


def test_free_form_activity_and_role_strings_are_coerced():
    bundle = SessionBundle(
        transcript=(TranscriptLine("10:00:10", "10:00:30", "Remember the radius"),),
        chats=(ChatMessage("10:00:20", "Student", "s1", "done"),),
        activities=(ActivityRecord("A", "exit ticket", "10:00:00", "10:01:00", True),),
    )

    report = evaluate_session(bundle)

    [entry] = report.timeline
    assert entry.activity_type == ActivityType.EXIT_TICKET
    assert FeedbackCategory.ACTIVITY_PROTOCOL in [i.category for i in report.negative_feedback]
    assert report.engagement.student_message_count == 1
    assert json.loads(report_to_json(report))["activities"][0]["activity_type"] == "ExitTicket"


def test_students_and_reactions_sections():
    lesson = _lesson()
    students = tuple(replace(s, active_time_min=float(i)) for i, s in enumerate(lesson.students))
    reactions = (
        ReactionEvent("10:03:05", "happy", "s1"),
        ReactionEvent("10:03:40", "happy", "s2"),
        ReactionEvent("10:04:00", "confused", "s3"),
        ReactionEvent(None, "happy", "s4"),
    )

    report = evaluate_session(replace(lesson, students=students, reactions=reactions))

    assert [s.user_id for s in report.students] == ["s4", "s3", "s2", "s1"]
    assert report.engagement.reaction_total == 4
    assert report.engagement.reaction_breakdown == {"confused": 1, "happy": 3}
    assert report.engagement.reaction_timeline == [
        {"time": "10:03", "happy": 2},
        {"time": "10:04", "confused": 1},
    ]
    payload = report.to_dict()
    assert payload["students"][0]["user_id"] == "s4"
    assert payload["students"][0]["active_time_min"] == 3.0
