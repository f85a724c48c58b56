# ABOUTME: Scores the session on a multi-criterion rubric from derived metrics.
# ABOUTME: Each criterion is an ordered list of threshold rules applied to a 3.0 base.

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .numeric import round_half_up, round_to_half
from .schemas import ActivityTimelineEntry, ConceptMastery, CriterionScore
from .timeline import CALIBRATION, CONFUSION, DURATION, PROTOCOL

BASE_SCORE = 3.0
RECOMMENDATION_CUTOFF = 4.0

Metrics = Mapping[str, object]


@dataclass(frozen=True)
class ScoringRule:
    """Adds `delta` and records `evidence` when `condition(metrics)` holds."""

    name: str
    condition: Callable[[Metrics], bool]
    delta: float
    evidence: str
    recommendation: Optional[str] = None


@dataclass(frozen=True)
class Criterion:
    id: str
    name: str
    rules: Tuple[ScoringRule, ...]
    affirmation: str
    fallback_recommendation: str
    insight_kinds: Tuple[str, ...] = ()


def _up(name, condition, evidence) -> ScoringRule:
    return ScoringRule(name, condition, 0.5, evidence)


def _down(name, condition, evidence, recommendation) -> ScoringRule:
    return ScoringRule(name, condition, -0.5, evidence, recommendation)


CONTENT_MASTERY = Criterion(
    id="content_mastery",
    name="Content mastery",
    rules=(
        _down(
            "no_answers",
            lambda m: m["answered_count"] == 0,
            "No answered poll questions were available to gauge comprehension.",
            "Run at least one short poll per lesson section to check understanding.",
        ),
        _up(
            "strong_comprehension",
            lambda m: m["answered_count"] > 0 and m["overall_correctness"] >= 75,
            "Strong comprehension: {overall_correctness}% of answered questions were correct.",
        ),
        _up(
            "near_mastery",
            lambda m: m["answered_count"] > 0 and m["overall_correctness"] >= 90,
            "Near-complete mastery across the session ({overall_correctness}% correct).",
        ),
        _down(
            "low_comprehension",
            lambda m: m["answered_count"] > 0 and m["overall_correctness"] < 50,
            "Low comprehension: only {overall_correctness}% of answered questions were correct.",
            "Re-teach the weakest ideas with a worked example before the next check.",
        ),
        _up(
            "high_response_rate",
            lambda m: m["answered_count"] > 0 and m["response_rate"] >= 80,
            "{response_rate}% of seen questions were answered.",
        ),
        _down(
            "low_response_rate",
            lambda m: m["answered_count"] > 0 and m["response_rate"] < 50,
            "Only {response_rate}% of seen questions were answered.",
            "Give explicit answer time and remind students to submit their responses.",
        ),
    ),
    affirmation="Students showed solid understanding; keep checking it at the same rhythm.",
    fallback_recommendation="Add a quick comprehension check after each explanation.",
    insight_kinds=(CALIBRATION,),
)

STUDENT_ENGAGEMENT = Criterion(
    id="student_engagement",
    name="Student engagement",
    rules=(
        _down(
            "no_chat",
            lambda m: m["student_message_count"] == 0,
            "No student chat messages were recorded.",
            "Invite chat answers with short, direct prompts.",
        ),
        _up(
            "wide_participation",
            lambda m: m["chat_participation_rate"] >= 50,
            "{chat_participation_rate}% of students took part in chat.",
        ),
        _down(
            "narrow_participation",
            lambda m: m["student_message_count"] > 0 and m["chat_participation_rate"] < 20,
            "Only {chat_participation_rate}% of students used chat.",
            "Call on quieter students by name and ask for one-word chat answers.",
        ),
        _up(
            "warm_session",
            lambda m: m["session_temperature"] is not None and m["session_temperature"] >= 70,
            "Session temperature was {session_temperature}.",
        ),
        _down(
            "cold_session",
            lambda m: m["session_temperature"] is not None and m["session_temperature"] < 40,
            "Session temperature was low ({session_temperature}).",
            "Vary the pace with short interactive moments to lift the room.",
        ),
        _up(
            "engagement_bursts",
            lambda m: m["burst_count"] >= 2,
            "{burst_count} bursts of lively chat engagement.",
        ),
        _up(
            "positive_sentiment",
            lambda m: m["sentiment_total"] > 0 and m["sentiment_ratio"] >= 70,
            "{sentiment_ratio}% of students with a sentiment reading were positive.",
        ),
        _down(
            "negative_sentiment",
            lambda m: m["sentiment_total"] > 0 and m["sentiment_ratio"] < 40,
            "Only {sentiment_ratio}% of students with a sentiment reading were positive.",
            "Check in on how students feel about the pace and difficulty.",
        ),
    ),
    affirmation="Students stayed engaged; keep the interactive rhythm.",
    fallback_recommendation="Build more moments where every student has to respond.",
    insight_kinds=(CONFUSION,),
)

COMMUNICATION = Criterion(
    id="communication",
    name="Communication and presence",
    rules=(
        _up(
            "encouragement",
            lambda m: m["encouragement_count"] >= 3,
            "{encouragement_count} moments of praise or encouragement.",
        ),
        _down(
            "no_encouragement",
            lambda m: m["line_count"] > 0 and m["encouragement_count"] == 0,
            "No verbal encouragement was detected.",
            "Acknowledge correct answers and effort out loud.",
        ),
        _up(
            "questioning",
            lambda m: m["questions_per_10_min"] >= 2,
            "{question_count} questions posed ({questions_per_10_min} per 10 minutes of talk).",
        ),
        _down(
            "no_questions",
            lambda m: m["line_count"] > 0 and m["question_count"] == 0,
            "No questions to students were detected in your speech.",
            "Pose a check-for-understanding question every few minutes.",
        ),
        _up(
            "clarity_cues",
            lambda m: m["clarity_marker_count"] >= 3,
            "{clarity_marker_count} clarity cues such as examples, sequencing, or rephrasing.",
        ),
        _down(
            "repeated_confusion",
            lambda m: m["confusion_activity_count"] >= 2,
            "Students signalled confusion around {confusion_activity_count} activities.",
            "Pause when confusion appears in chat and re-explain with a different example.",
        ),
        _up(
            "chat_presence",
            lambda m: m["teacher_chat_count"] >= 1,
            "You replied in chat {teacher_chat_count} time(s).",
        ),
    ),
    affirmation="Communication was clear and encouraging.",
    fallback_recommendation="Mix explanation with more questions and encouragement.",
    insight_kinds=(CONFUSION,),
)

TIME_MANAGEMENT = Criterion(
    id="time_management",
    name="Time management",
    rules=(
        _up(
            "talk_within_ceiling",
            lambda m: m["line_count"] > 0 and m["teacher_talk_min"] <= m["max_total_talk_min"],
            "Teacher talk totalled {teacher_talk_min} minutes.",
        ),
        _down(
            "talk_over_ceiling",
            lambda m: m["teacher_talk_min"] > m["max_total_talk_min"],
            "Teacher talk totalled {teacher_talk_min} minutes, above {max_total_talk_min} minutes.",
            "Trim direct instruction and hand more time to student practice.",
        ),
        _up(
            "no_long_segments",
            lambda m: m["line_count"] > 0 and m["long_segment_count"] == 0,
            "No uninterrupted talk exceeded {max_continuous_sec} seconds.",
        ),
        _down(
            "long_segments",
            lambda m: m["long_segment_count"] >= 1,
            "{long_segment_count} uninterrupted stretch(es) over {max_continuous_sec}s "
            "(longest {longest_segment_sec}s).",
            "Break long explanations with a question or quick poll every two minutes.",
        ),
        _down(
            "many_long_segments",
            lambda m: m["long_segment_count"] >= 3,
            "Long uninterrupted talk happened repeatedly.",
            "Plan interaction points into the lesson script ahead of time.",
        ),
        _up(
            "activities_on_plan",
            lambda m: m["timed_activity_count"] > 0 and m["on_plan_pct"] >= 50,
            "{on_plan_pct}% of activities ran close to their planned duration.",
        ),
        _down(
            "missized_explanations",
            lambda m: m["explanation_negatives"] >= 2,
            "{explanation_negatives} post-activity explanations were mis-sized for the results.",
            "Match review time to results: brief when most are correct, longer when most are wrong.",
        ),
        _up(
            "students_active",
            lambda m: m["student_active_pct"] > m["student_active_target_pct"],
            "Students were active for {student_active_pct}% of the lesson.",
        ),
    ),
    affirmation="Lesson time was well balanced between teaching and practice.",
    fallback_recommendation="Plan timings per section and keep explanations short.",
    insight_kinds=(DURATION,),
)

INSTRUCTIONAL_ERRORS = Criterion(
    id="instructional_errors",
    name="Instructional errors",
    rules=(
        _up(
            "no_self_corrections",
            lambda m: m["line_count"] > 0 and m["self_correction_count"] == 0,
            "No self-corrections were detected in your explanations.",
        ),
        _down(
            "frequent_self_corrections",
            lambda m: m["self_correction_count"] >= 3,
            "{self_correction_count} self-corrections suggest slips during explanation.",
            "Rehearse the worked examples before class.",
        ),
        _down(
            "talk_during_exit_ticket",
            lambda m: m["exit_ticket_talk_count"] >= 1,
            "Teacher spoke during {exit_ticket_talk_count} exit ticket(s) for {exit_ticket_talk_sec}s.",
            "Stay silent during exit tickets so results reflect independent work.",
        ),
        _down(
            "unnecessary_call_up",
            lambda m: m["unnecessary_call_ups"] >= 1,
            "A student was called to the front after an activity most students already solved.",
            "Skip board call-ups when correctness is already high.",
        ),
        _down(
            "insufficient_explanations",
            lambda m: m["insufficient_explanations"] >= 2,
            "{insufficient_explanations} activities followed insufficient explanation.",
            "Spend more time on the concept before launching the check.",
        ),
        _up(
            "clean_activities",
            lambda m: m["timed_activity_count"] > 0
            and m["exit_ticket_talk_count"] == 0
            and m["insufficient_explanations"] == 0,
            "Activities ran without protocol or explanation issues.",
        ),
    ),
    affirmation="No notable instructional errors were detected.",
    fallback_recommendation="Review activity protocol and explanation accuracy.",
    insight_kinds=(PROTOCOL,),
)

DISTINCTIVE_MOMENTS = Criterion(
    id="distinctive_moments",
    name="Distinctive moments",
    rules=(
        _up(
            "responsive_bursts",
            lambda m: m["bursts_during_talk"] >= 1,
            "{bursts_during_talk} chat burst(s) coincided with your explanation.",
        ),
        _up(
            "high_scoring_activity",
            lambda m: m["high_correctness_activities"] >= 1,
            "{high_correctness_activities} activity(ies) finished above {high_correctness_pct}% correct.",
        ),
        _up(
            "frequent_encouragement",
            lambda m: m["encouragement_count"] >= 5,
            "Frequent encouragement ({encouragement_count} moments).",
        ),
        _down(
            "unresolved_confusion",
            lambda m: m["unresolved_confusion"] >= 1,
            "Confusion around {unresolved_confusion} activity(ies) was followed by low correctness.",
            "When chat shows confusion, address it before the activity closes.",
        ),
        _down(
            "no_standout",
            lambda m: m["bursts_during_talk"] == 0 and m["high_correctness_activities"] == 0,
            "No standout moments of engagement or mastery were detected.",
            "Plan one memorable hook such as a puzzle or a real-world example.",
        ),
    ),
    affirmation="The lesson had memorable high points.",
    fallback_recommendation="Plan a moment that invites the whole class to react.",
)

ACTIVITY_EXECUTION = Criterion(
    id="activity_execution",
    name="Activity execution",
    rules=(
        _down(
            "no_activities",
            lambda m: m["planned_activity_count"] == 0,
            "No classroom activities were planned.",
            "Plan at least a section check and an exit ticket.",
        ),
        _up(
            "high_completion",
            lambda m: m["planned_activity_count"] > 0 and m["completion_rate"] >= 80,
            "{happened_activity_count} of {planned_activity_count} planned activities happened.",
        ),
        _down(
            "low_completion",
            lambda m: m["planned_activity_count"] > 0 and m["completion_rate"] < 50,
            "Only {happened_activity_count} of {planned_activity_count} planned activities happened.",
            "Reserve time for every planned activity, especially the exit ticket.",
        ),
        _up(
            "exit_ticket_held",
            lambda m: m["exit_ticket_happened"],
            "An exit ticket closed the lesson.",
        ),
        _down(
            "compromised_exit_ticket",
            lambda m: m["exit_ticket_talk_count"] >= 1,
            "Exit ticket results may be unreliable because the teacher spoke during it.",
            "Let the exit ticket run without guidance.",
        ),
    ),
    affirmation="Activities ran as planned.",
    fallback_recommendation="Protect activity time in the lesson plan.",
    insight_kinds=(DURATION, PROTOCOL),
)

CONCEPT_MASTERY = Criterion(
    id="concept_mastery",
    name="Concept mastery",
    rules=(
        _down(
            "no_concepts",
            lambda m: m["concepts_taught"] == 0,
            "No taught concepts could be linked to activity results.",
            "Name the target concept explicitly before each check.",
        ),
        _up(
            "strong_concepts",
            lambda m: m["strong_concepts"] >= 1,
            "Strong concepts: {strong_concept_names}.",
        ),
        _up(
            "broad_coverage",
            lambda m: m["concepts_taught"] >= 3,
            "{concepts_taught} concepts were taught and then checked.",
        ),
        _down(
            "weak_concepts",
            lambda m: m["weak_concepts"] >= 1,
            "Weak concepts: {weak_concept_names}.",
            "Revisit {weak_concept_names} at the start of the next lesson.",
        ),
    ),
    affirmation="Concepts taught were well absorbed.",
    fallback_recommendation="Link each explanation to a check of the same concept.",
)

CRITERIA: Tuple[Criterion, ...] = (
    CONTENT_MASTERY,
    STUDENT_ENGAGEMENT,
    COMMUNICATION,
    TIME_MANAGEMENT,
    INSTRUCTIONAL_ERRORS,
    DISTINCTIVE_MOMENTS,
    ACTIVITY_EXECUTION,
    CONCEPT_MASTERY,
)

OVERALL_ID = "overall"


def evaluate_criterion(
    criterion: Criterion,
    metrics: Metrics,
    entries: Sequence[ActivityTimelineEntry] = (),
    extra_commentary: Sequence[str] = (),
) -> CriterionScore:
    score = BASE_SCORE
    evidence: List[str] = []
    recommendations: List[str] = []
    for rule in criterion.rules:
        if not rule.condition(metrics):
            continue
        score += rule.delta
        evidence.append(rule.evidence.format(**metrics))
        if rule.recommendation:
            recommendations.append(rule.recommendation.format(**metrics))

    final = round_to_half(score)
    if not evidence:
        evidence.append("No signal crossed a scoring threshold.")
    if final < RECOMMENDATION_CUTOFF:
        recs = recommendations or [criterion.fallback_recommendation]
    else:
        recs = [criterion.affirmation]

    commentary = [
        insight.text for entry in entries for insight in entry.insights if insight.kind in criterion.insight_kinds
    ]
    commentary.extend(extra_commentary)

    return CriterionScore(
        id=criterion.id,
        name=criterion.name,
        score=final,
        evidence=evidence,
        commentary=commentary,
        recommendations=recs,
    )


def overall_criterion(scores: Sequence[CriterionScore]) -> CriterionScore:
    """Rounded mean of the other criteria rather than an independent signal score."""

    mean = float(np.mean([s.score for s in scores])) if scores else BASE_SCORE
    final = round_to_half(mean)
    ranked = sorted(scores, key=lambda s: s.score)
    evidence = [f"Mean of {len(scores)} criteria: {round_half_up(mean, 2)}."]
    if ranked:
        evidence.append(f"Strongest area: {ranked[-1].name} ({ranked[-1].score}).")
        evidence.append(f"Weakest area: {ranked[0].name} ({ranked[0].score}).")
    if final < RECOMMENDATION_CUTOFF and ranked:
        recommendations = [f"Focus next on {ranked[0].name.lower()}."]
    else:
        recommendations = ["Strong lesson overall; keep refining the details."]
    return CriterionScore(
        id=OVERALL_ID,
        name="Overall",
        score=final,
        evidence=evidence,
        commentary=[],
        recommendations=recommendations,
    )


def concept_commentary(concepts: Sequence[ConceptMastery]) -> List[str]:
    return [f"{c.concept}: {c.percent}% correct ({c.band})" for c in concepts]


def score_rubric(
    metrics: Metrics,
    entries: Sequence[ActivityTimelineEntry] = (),
    concepts: Sequence[ConceptMastery] = (),
) -> Tuple[List[CriterionScore], float]:
    """Score every criterion plus overall; return them with the one-decimal report score."""

    scores: List[CriterionScore] = []
    for criterion in CRITERIA:
        extra = concept_commentary(concepts) if criterion is CONCEPT_MASTERY else ()
        scores.append(evaluate_criterion(criterion, metrics, entries, extra))
    scores.append(overall_criterion(scores))
    report_score = round_half_up(float(np.mean([s.score for s in scores])), 1)
    return scores, report_score


def metric_defaults() -> Dict[str, object]:
    """Zero-valued metrics; every key a rule or template reads is present."""

    return {
        "answered_count": 0,
        "overall_correctness": 0,
        "response_rate": 0,
        "student_message_count": 0,
        "chat_participation_rate": 0,
        "session_temperature": None,
        "burst_count": 0,
        "bursts_during_talk": 0,
        "sentiment_total": 0,
        "sentiment_ratio": 0,
        "line_count": 0,
        "encouragement_count": 0,
        "question_count": 0,
        "questions_per_10_min": 0.0,
        "clarity_marker_count": 0,
        "teacher_chat_count": 0,
        "confusion_activity_count": 0,
        "teacher_talk_min": 0.0,
        "max_total_talk_min": 0.0,
        "max_continuous_sec": 0,
        "long_segment_count": 0,
        "longest_segment_sec": 0,
        "timed_activity_count": 0,
        "on_plan_pct": 0,
        "explanation_negatives": 0,
        "student_active_pct": 0,
        "student_active_target_pct": 0.0,
        "self_correction_count": 0,
        "exit_ticket_talk_count": 0,
        "exit_ticket_talk_sec": 0.0,
        "unnecessary_call_ups": 0,
        "insufficient_explanations": 0,
        "high_correctness_activities": 0,
        "high_correctness_pct": 0,
        "unresolved_confusion": 0,
        "planned_activity_count": 0,
        "happened_activity_count": 0,
        "completion_rate": 0,
        "exit_ticket_happened": False,
        "concepts_taught": 0,
        "strong_concepts": 0,
        "weak_concepts": 0,
        "strong_concept_names": "",
        "weak_concept_names": "",
    }
