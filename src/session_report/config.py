# ABOUTME: Declares the fixed policy thresholds and pattern tables used by the engine.
# ABOUTME: Loads overrides from YAML so vocabulary and limits can change without code edits.

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Pattern, Sequence, Tuple

import yaml

from . import patterns

GAP_THRESHOLD_SEC = 5.0
MAX_CONTINUOUS_SEC = 120.0
MAX_TOTAL_TALK_MIN = 15.0
PRE_WINDOW_SEC = 300.0
POST_WINDOW_SEC = 180.0
CONFUSION_LEAD_SEC = 30.0
CONFUSION_TRAIL_SEC = 60.0
BURST_WINDOW_SEC = 30.0
BURST_MIN_MESSAGES = 3
BURST_TALK_TOLERANCE_SEC = 10.0
STUDENT_ACTIVE_TARGET_PCT = 50.0
FALLBACK_TOPIC = "general instruction"


@dataclass(frozen=True)
class ReportThresholds:
    """Policy constants; every value is fixed per evaluation."""

    gap_threshold_sec: float = GAP_THRESHOLD_SEC
    max_continuous_sec: float = MAX_CONTINUOUS_SEC
    max_total_talk_min: float = MAX_TOTAL_TALK_MIN
    pre_window_sec: float = PRE_WINDOW_SEC
    post_window_sec: float = POST_WINDOW_SEC
    confusion_lead_sec: float = CONFUSION_LEAD_SEC
    confusion_trail_sec: float = CONFUSION_TRAIL_SEC
    confusion_max_examples: int = 3
    burst_window_sec: float = BURST_WINDOW_SEC
    burst_min_messages: int = BURST_MIN_MESSAGES
    burst_talk_tolerance_sec: float = BURST_TALK_TOLERANCE_SEC
    student_active_target_pct: float = STUDENT_ACTIVE_TARGET_PCT
    duration_ratio_low: float = 0.7
    duration_ratio_high: float = 1.3
    # Correctness bands used for explanation-time feedback.
    high_correctness_pct: float = 75.0
    low_correctness_pct: float = 50.0
    high_band_max_explain_sec: float = 15.0
    medium_band_min_explain_sec: float = 30.0
    medium_band_max_explain_sec: float = 60.0
    low_band_min_explain_sec: float = 60.0
    low_band_max_explain_sec: float = 120.0
    # Pre-activity explanation calibration.
    calibrated_min_pre_sec: float = 60.0
    excessive_pre_sec: float = 180.0
    fallback_topic: str = FALLBACK_TOPIC


@dataclass(frozen=True)
class PatternTables:
    """Ordered (regex, label) tables; order only sets selection priority."""

    topics: Tuple[Tuple[str, str], ...] = patterns.TOPIC_PATTERNS
    confusion: Tuple[Tuple[str, str], ...] = patterns.CONFUSION_PATTERNS
    encouragement: Tuple[Tuple[str, str], ...] = patterns.ENCOURAGEMENT_PATTERNS
    clarity: Tuple[Tuple[str, str], ...] = patterns.CLARITY_PATTERNS
    questions: Tuple[Tuple[str, str], ...] = patterns.QUESTION_PATTERNS
    self_correction: Tuple[Tuple[str, str], ...] = patterns.SELF_CORRECTION_PATTERNS
    called_to_front: Tuple[Tuple[str, str], ...] = patterns.CALLED_TO_FRONT_PATTERNS

    def compiled(self, name: str) -> Tuple[Tuple[Pattern[str], str], ...]:
        return _compile_cached(tuple(tuple(row) for row in getattr(self, name)))


@dataclass(frozen=True)
class EngineConfig:
    thresholds: ReportThresholds = field(default_factory=ReportThresholds)
    patterns: PatternTables = field(default_factory=PatternTables)


DEFAULT_CONFIG = EngineConfig()


@lru_cache(maxsize=64)
def _compile_cached(rows: Tuple[Tuple[str, ...], ...]) -> Tuple[Tuple[Pattern[str], str], ...]:
    return compile_table(rows)


def compile_table(rows: Sequence[Sequence[str]]) -> Tuple[Tuple[Pattern[str], str], ...]:
    compiled = []
    for row in rows:
        if len(row) != 2:
            raise ValueError(f"Pattern rows must be (regex, label) pairs, got {row!r}.")
        regex, label = row
        try:
            compiled.append((re.compile(regex, re.IGNORECASE), str(label)))
        except re.error as exc:
            raise ValueError(f"Invalid pattern {regex!r} for label '{label}': {exc}") from exc
    return tuple(compiled)


def load_engine_config(path: Optional[Path]) -> EngineConfig:
    """Build an EngineConfig from a YAML file; missing sections keep defaults."""

    if path is None:
        return DEFAULT_CONFIG
    with open(path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, Mapping):
        raise ValueError(f"Config at {path} must be a mapping.")
    return config_from_mapping(cfg)


def config_from_mapping(cfg: Mapping) -> EngineConfig:
    thresholds = _merge(ReportThresholds(), _typed_thresholds(cfg.get("thresholds") or {}), "thresholds")
    tables = cfg.get("patterns") or {}
    converted: Dict[str, Tuple[Tuple[str, str], ...]] = {}
    for name, rows in tables.items():
        converted[name] = tuple(tuple(str(cell) for cell in row) for row in rows)
    pattern_tables = _merge(PatternTables(), converted, "patterns")
    for f in fields(PatternTables):
        # Fail fast on bad regexes instead of at evaluation time.
        pattern_tables.compiled(f.name)
    return EngineConfig(thresholds=thresholds, patterns=pattern_tables)


def _merge(base, overrides: Mapping, section: str):
    known = {f.name for f in fields(base)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unsupported {section} keys: {', '.join(unknown)}.")
    return replace(base, **dict(overrides))


def _typed_thresholds(overrides: Mapping) -> Dict[str, object]:
    """Cast each override to the type of its default, raising ValueError on a mismatch."""

    if not isinstance(overrides, Mapping):
        raise ValueError("thresholds must be a mapping of name to value.")
    defaults = ReportThresholds()
    typed: Dict[str, object] = {}
    for name, value in overrides.items():
        if not hasattr(defaults, name):
            # Unknown names are reported together by _merge.
            typed[name] = value
            continue
        default = getattr(defaults, name)
        if isinstance(default, str):
            if not isinstance(value, str):
                raise ValueError(f"Threshold '{name}' must be text, got {value!r}.")
            typed[name] = value
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Threshold '{name}' must be a number, got {value!r}.")
        elif isinstance(default, int) and not float(value).is_integer():
            raise ValueError(f"Threshold '{name}' must be a whole number, got {value!r}.")
        else:
            typed[name] = type(default)(value)
    return typed
