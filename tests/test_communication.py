# ABOUTME: Tests the communication profile built from teacher speech and chat.
# ABOUTME: Verifies per-line counting of praise, questions, clarity cues, and corrections.

import pytest

from src.session_report.communication import profile_communication
from src.session_report.config import DEFAULT_CONFIG
from src.session_report.schemas import AuthorRole, ChatMessage, SpeechLine


def test_profile_counts_each_signal_once_per_line():
    lines = [
        SpeechLine(0, 10, "Excellent work!"),
        SpeechLine(10, 20, "What is the radius?"),
        SpeechLine(20, 30, "For example, look at this wheel."),
        SpeechLine(30, 40, "Sorry, I mean the diameter."),
        SpeechLine(40, 50, "Ali, come to the board please."),
    ]
    chats = [
        ChatMessage("10:00:00", AuthorRole.TEACHER, "t1", "Great job everyone"),
        ChatMessage("10:00:05", AuthorRole.STUDENT, "s1", "thanks"),
    ]

    profile = profile_communication(lines, chats, DEFAULT_CONFIG.patterns, total_talk_sec=600)

    assert profile.encouragement_count == 1
    assert profile.question_count == 1
    assert profile.clarity_marker_count == 1
    assert profile.self_correction_count == 1
    assert profile.called_to_front_count == 1
    assert profile.teacher_chat_count == 1
    assert profile.questions_per_10_min == pytest.approx(1.0)
    assert profile.encouragement_examples == ["Excellent work!"]


def test_profile_of_silent_session_is_zero():
    profile = profile_communication([], [], DEFAULT_CONFIG.patterns, total_talk_sec=0)

    assert profile.question_count == 0
    assert profile.questions_per_10_min == 0.0
    assert profile.encouragement_examples == []
