# ABOUTME: Defines canonical record types consumed and produced by the report engine.
# ABOUTME: Centralizes transcript, chat, poll, activity, and derived report schemas.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

# Clock string such as "10:02:05" or a number already in seconds.
Stamp = Union[str, float, None]


class ActivityType(str, Enum):
    SECTION_CHECK = "SectionCheck"
    TEAM_EXERCISE = "TeamExercise"
    EXIT_TICKET = "ExitTicket"

    @classmethod
    def coerce(cls, value) -> "ActivityType":
        """Map a free-form activity type onto the closest canonical member."""

        if isinstance(value, cls):
            return value
        if not value:
            return cls.SECTION_CHECK
        key = re.sub(r"[^a-z]", "", str(value).lower())
        if "exit" in key or "ticket" in key:
            return cls.EXIT_TICKET
        if "team" in key or "group" in key or "exercise" in key:
            return cls.TEAM_EXERCISE
        return cls.SECTION_CHECK


class AuthorRole(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"

    @classmethod
    def coerce(cls, value) -> "AuthorRole":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        if key in {"teacher", "instructor", "tutor", "admin", "host"}:
            return cls.TEACHER
        return cls.STUDENT


class Polarity(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class FeedbackCategory(str, Enum):
    EXPLANATION_TIME = "explanation_time"
    ACTIVITY_PROTOCOL = "activity_protocol"
    CALLED_TO_FRONT = "called_to_front"
    CONTINUOUS_TALK = "continuous_talk"
    TOTAL_TALK_TIME = "total_talk_time"
    STUDENT_ACTIVITY = "student_activity"
    ENGAGEMENT_BURST = "engagement_burst"


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TranscriptLine:
    """Raw transcript row; timestamps are opaque until normalized."""

    start_time: Stamp
    end_time: Stamp
    text: str = ""


@dataclass(frozen=True)
class ChatMessage:
    timestamp: Stamp
    author_role: AuthorRole
    author_id: Optional[str]
    text: str = ""
    author_name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "author_role", AuthorRole.coerce(self.author_role))


@dataclass(frozen=True)
class PollResponse:
    question_id: Optional[str]
    activity_id: Optional[str]
    seen: bool = False
    answered: bool = False
    correct: bool = False
    user_id: Optional[str] = None
    question_text: Optional[str] = None


@dataclass(frozen=True)
class ActivityRecord:
    activity_id: str
    activity_type: ActivityType
    start_time: Stamp
    end_time: Stamp
    happened: bool = False
    planned_duration_sec: float = 0.0
    actual_duration_sec: float = 0.0
    total_questions: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "activity_type", ActivityType.coerce(self.activity_type))


@dataclass(frozen=True)
class StudentSession:
    """Per-user session summary; teacher rows share the same shape."""

    user_id: str
    user_name: Optional[str] = None
    user_type: str = "STUDENT"
    sentiment: Optional[str] = None
    learning_time_min: float = 0.0
    active_time_min: float = 0.0
    polls_seen: int = 0
    polls_responded: int = 0
    messages: int = 0
    hand_raises: int = 0

    @property
    def is_student(self) -> bool:
        return (self.user_type or "").strip().upper() == "STUDENT"


@dataclass(frozen=True)
class ReactionEvent:
    timestamp: Stamp
    emotion: Optional[str]
    user_id: Optional[str] = None


@dataclass(frozen=True)
class SessionMetadata:
    session_id: Optional[str] = None
    session_name: Optional[str] = None
    teacher_name: Optional[str] = None
    teacher_start_time: Stamp = None
    teaching_time_min: float = 0.0
    session_temperature: Optional[float] = None
    positive_users: int = 0
    negative_users: int = 0
    neutral_users: int = 0


@dataclass(frozen=True)
class SessionBundle:
    """Immutable snapshot of everything needed to evaluate one session."""

    metadata: Optional[SessionMetadata] = None
    transcript: Tuple[TranscriptLine, ...] = ()
    chats: Tuple[ChatMessage, ...] = ()
    activities: Tuple[ActivityRecord, ...] = ()
    polls: Tuple[PollResponse, ...] = ()
    students: Tuple[StudentSession, ...] = ()
    reactions: Tuple[ReactionEvent, ...] = ()


# ---------------------------------------------------------------------------
# Normalized and derived records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpeechLine:
    start_sec: float
    end_sec: float
    text: str = ""

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec


@dataclass(frozen=True)
class Segment:
    """Maximal run of teacher speech whose internal gaps stay under the threshold."""

    start_sec: float
    end_sec: float
    line_count: int = 1

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec


@dataclass(frozen=True)
class TimedChat:
    timestamp_sec: float
    author_role: AuthorRole
    author_id: Optional[str]
    text: str = ""


@dataclass(frozen=True)
class CorrectnessStat:
    answered_count: int = 0
    correct_count: int = 0
    percent: int = 0


@dataclass(frozen=True)
class QuestionStat:
    question_id: str
    question_text: str
    answered_count: int
    correct_count: int
    percent: int


@dataclass(frozen=True)
class PollSummary:
    total_polls: int = 0
    total_seen: int = 0
    total_answered: int = 0
    total_correct: int = 0
    correctness_percent: int = 0
    response_rate_percent: int = 0
    by_question: List[QuestionStat] = field(default_factory=list)


@dataclass(frozen=True)
class TeachingWindow:
    start_sec: float
    end_sec: float
    duration_sec: float
    topics: str
    line_count: int


@dataclass(frozen=True)
class EngagementBurst:
    start_sec: float
    end_sec: float
    message_count: int
    overlaps_talk: bool = False


@dataclass(frozen=True)
class Insight:
    """Per-activity observation; kind is one of duration, calibration, protocol, confusion."""

    kind: str
    text: str


@dataclass
class ActivityTimelineEntry:
    activity_id: str
    activity_type: ActivityType
    start_sec: float
    end_sec: float
    start_label: str
    pre_teaching: TeachingWindow
    teacher_talk_during: bool
    talk_during_sec: float
    post_teaching: TeachingWindow
    correctness: CorrectnessStat
    confusion_detected: bool
    confusion_examples: List[str] = field(default_factory=list)
    planned_duration_sec: float = 0.0
    actual_duration_sec: float = 0.0
    duration_ratio: Optional[float] = None
    explanation_calibration: Optional[str] = None
    insights: List[Insight] = field(default_factory=list)


@dataclass(frozen=True)
class FeedbackItem:
    category: FeedbackCategory
    polarity: Polarity
    text: str
    activity_id: Optional[str] = None
    recommended_value: Optional[str] = None
    actual_value: Optional[str] = None


@dataclass
class CriterionScore:
    id: str
    name: str
    score: float
    evidence: List[str] = field(default_factory=list)
    commentary: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConceptMastery:
    concept: str
    activity_ids: List[str]
    answered_count: int
    correct_count: int
    percent: int
    band: str


@dataclass(frozen=True)
class CommunicationProfile:
    encouragement_count: int = 0
    clarity_marker_count: int = 0
    question_count: int = 0
    self_correction_count: int = 0
    called_to_front_count: int = 0
    teacher_chat_count: int = 0
    questions_per_10_min: float = 0.0
    encouragement_examples: List[str] = field(default_factory=list)
