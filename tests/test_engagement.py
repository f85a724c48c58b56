# ABOUTME: Tests reaction tallies, per-minute timelines, and the per-student ranking.
# ABOUTME: Confirms untimed reactions are skipped and buckets stay sorted.

from src.session_report.engagement import engagement_timeline, rank_students, reaction_breakdown, reaction_timeline
from src.session_report.schemas import AuthorRole, ReactionEvent, StudentSession, TimedChat


def test_reaction_breakdown_normalizes_labels():
    reactions = [
        ReactionEvent("10:00:00", "Happy"),
        ReactionEvent("10:00:10", "happy "),
        ReactionEvent("10:00:20", None),
        ReactionEvent("10:00:30", "confused"),
    ]

    assert reaction_breakdown(reactions) == {"confused": 1, "happy": 2, "unknown": 1}
    assert reaction_breakdown([]) == {}


def test_engagement_timeline_buckets_by_minute():
    chats = [
        TimedChat(36065, AuthorRole.STUDENT, "s1", "a"),
        TimedChat(36010, AuthorRole.STUDENT, "s2", "b"),
        TimedChat(36070, AuthorRole.TEACHER, "t1", "c"),
    ]
    reactions = [ReactionEvent("10:00:30", "happy"), ReactionEvent("bad", "happy")]

    timeline = engagement_timeline(chats, reactions)

    assert timeline == [
        {"time": "10:00", "chats": 1, "reactions": 1},
        {"time": "10:01", "chats": 2, "reactions": 0},
    ]


def test_reaction_timeline_counts_each_emotion_per_minute():
    reactions = [
        ReactionEvent("10:01:10", "Happy"),
        ReactionEvent("10:00:05", "happy"),
        ReactionEvent("10:00:40", "confused"),
        ReactionEvent("10:00:50", "happy"),
        ReactionEvent(None, "happy"),
    ]

    assert reaction_timeline(reactions) == [
        {"time": "10:00", "confused": 1, "happy": 2},
        {"time": "10:01", "happy": 1},
    ]
    assert reaction_timeline([]) == []


def test_rank_students_keeps_students_sorted_by_active_time():
    rows = [
        StudentSession("s1", "Amal", active_time_min=10, polls_seen=3, hand_raises=1),
        StudentSession("t1", "Ms. Sara", user_type="TEACHER", active_time_min=50),
        StudentSession("s2", "Bilal", active_time_min=25, messages=4),
        StudentSession("s3", "Dina", active_time_min=10),
    ]

    ranked = rank_students(rows)

    assert [s.user_id for s in ranked] == ["s2", "s1", "s3"]
    assert ranked[0].messages == 4
    assert ranked[1].hand_raises == 1
