# ABOUTME: Exposes the classroom session report engine entrypoints.
# ABOUTME: Groups input schemas, configuration, loaders, and the evaluation pipeline.

from .schemas import (
    ActivityRecord,
    ActivityType,
    AuthorRole,
    ChatMessage,
    PollResponse,
    ReactionEvent,
    SessionBundle,
    SessionMetadata,
    StudentSession,
    TranscriptLine,
)
from .config import DEFAULT_CONFIG, EngineConfig, load_engine_config
from .loaders import bundle_from_mapping, load_bundle
from .assembly import gather_session_bundle
from .report import SessionReport, evaluate_session, report_to_json

__all__ = [
    "ActivityRecord",
    "ActivityType",
    "AuthorRole",
    "ChatMessage",
    "PollResponse",
    "ReactionEvent",
    "SessionBundle",
    "SessionMetadata",
    "StudentSession",
    "TranscriptLine",
    "DEFAULT_CONFIG",
    "EngineConfig",
    "load_engine_config",
    "bundle_from_mapping",
    "load_bundle",
    "gather_session_bundle",
    "SessionReport",
    "evaluate_session",
    "report_to_json",
]
