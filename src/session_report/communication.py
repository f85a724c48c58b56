# ABOUTME: Profiles the teacher's communication style from transcript and chat text.
# ABOUTME: Counts praise, clarity cues, questions, self-corrections, and board call-ups.

from __future__ import annotations

from typing import Sequence

from .config import PatternTables
from .numeric import round_half_up
from .schemas import AuthorRole, CommunicationProfile, SpeechLine
from .topics import count_matches


def profile_communication(
    lines: Sequence[SpeechLine],
    chats: Sequence,
    tables: PatternTables,
    total_talk_sec: float,
) -> CommunicationProfile:
    texts = [line.text for line in lines]
    encouragement, praise_lines = count_matches(texts, tables.compiled("encouragement"))
    clarity, _ = count_matches(texts, tables.compiled("clarity"))
    questions, _ = count_matches(texts, tables.compiled("questions"))
    corrections, _ = count_matches(texts, tables.compiled("self_correction"))
    called, _ = count_matches(texts, tables.compiled("called_to_front"))

    teacher_chats = [c for c in chats if c.author_role == AuthorRole.TEACHER]
    talk_minutes = total_talk_sec / 60.0
    per_10 = round_half_up(questions * 10.0 / talk_minutes, 1) if talk_minutes > 0 else 0.0

    return CommunicationProfile(
        encouragement_count=encouragement,
        clarity_marker_count=clarity,
        question_count=questions,
        self_correction_count=corrections,
        called_to_front_count=called,
        teacher_chat_count=len(teacher_chats),
        questions_per_10_min=per_10,
        encouragement_examples=[t.strip()[:120] for t in praise_lines[:3]],
    )
