# ABOUTME: Tests confusion detection, engagement bursts, and chat participation.
# ABOUTME: Uses synthetic timed chats to pin window and tolerance boundaries.

from src.session_report.chat_signals import (
    annotate_bursts,
    chat_participation_rate,
    detect_confusion,
    detect_engagement_bursts,
)
from src.session_report.config import DEFAULT_CONFIG
from src.session_report.schemas import AuthorRole, Segment, StudentSession, TimedChat

CONFUSION = DEFAULT_CONFIG.patterns.compiled("confusion")


def _student(ts, text="ok", author="s1"):
    return TimedChat(timestamp_sec=ts, author_role=AuthorRole.STUDENT, author_id=author, text=text)


def _teacher(ts, text):
    return TimedChat(timestamp_sec=ts, author_role=AuthorRole.TEACHER, author_id="t1", text=text)


def test_confusion_only_counts_student_messages_inside_window():
    chats = [
        _teacher(50, "Are you confused?"),
        _student(40, "I'm confused about the radius"),
        _student(500, "still confused"),
    ]

    found, examples = detect_confusion(chats, 0, 100, CONFUSION)

    assert found is True
    assert examples == ["I'm confused about the radius"]


def test_confusion_examples_are_capped_and_truncated():
    chats = [_student(i, "I don't understand " + "x" * 200) for i in range(5)]

    found, examples = detect_confusion(chats, 0, 10, CONFUSION, max_examples=3)

    assert found is True
    assert len(examples) == 3
    assert all(len(e) <= 120 for e in examples)


def test_no_confusion_without_matching_text():
    found, examples = detect_confusion([_student(5, "got it, thanks")], 0, 10, CONFUSION)
    assert found is False
    assert examples == []


def test_bursts_need_min_messages_inside_window():
    chats = [_student(0), _student(5), _student(10), _student(100), _teacher(101, "x"), _teacher(102, "y")]

    bursts = detect_engagement_bursts(chats, window_sec=30, min_messages=3)

    assert [(b.start_sec, b.end_sec, b.message_count) for b in bursts] == [(0, 10, 3)]


def test_bursts_do_not_overlap():
    chats = [_student(t) for t in (0, 10, 20, 30, 35, 45)]

    bursts = detect_engagement_bursts(chats, window_sec=30, min_messages=3)

    assert [(b.start_sec, b.end_sec) for b in bursts] == [(0, 30)]
    assert detect_engagement_bursts([], 30, 3) == []


def test_bursts_flagged_when_near_teacher_speech():
    bursts = detect_engagement_bursts([_student(0), _student(5), _student(10)], 30, 3)

    near = annotate_bursts(bursts, [Segment(15, 40)], tolerance_sec=10)
    far = annotate_bursts(bursts, [Segment(100, 200)], tolerance_sec=10)

    assert near[0].overlaps_talk is True
    assert far[0].overlaps_talk is False


def test_chat_participation_uses_roster_or_authors():
    students = [StudentSession("s1"), StudentSession("s2"), StudentSession("t1", user_type="TEACHER")]
    chats = [_student(1, author="s1"), _student(2, author="s1"), _teacher(3, "hi")]

    assert chat_participation_rate(chats, students) == 50
    assert chat_participation_rate(chats, []) == 100
    assert chat_participation_rate([], students) == 0
