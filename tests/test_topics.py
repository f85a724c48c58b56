# ABOUTME: Tests concept tagging of teacher speech with ordered pattern tables.
# ABOUTME: Checks first-seen ordering, Arabic vocabulary, and the fallback label.

from src.session_report.config import DEFAULT_CONFIG, compile_table
from src.session_report.topics import count_matches, extract_topics, match_labels, match_topics


def test_labels_follow_order_of_appearance():
    assert match_topics(["The diameter is twice the radius."]) == ["diameter", "radius"]
    assert match_topics(["The radius is half of the diameter."]) == ["radius", "diameter"]


def test_labels_are_deduplicated_across_lines():
    labels = match_topics(["radius first", "then the area", "radius again"])
    assert labels == ["radius", "area"]


def test_arabic_half_diameter_is_radius_not_diameter():
    assert match_topics(["نصف القطر يساوي ٥"]) == ["radius"]
    assert match_topics(["القطر يمر بالمركز"]) == ["diameter"]


def test_extract_topics_falls_back_when_nothing_matches():
    assert extract_topics(["Good morning everyone"]) == DEFAULT_CONFIG.thresholds.fallback_topic
    assert extract_topics([], fallback="warm-up") == "warm-up"
    assert extract_topics(["area and circumference"]) == "area, circumference"


def test_custom_table_ties_keep_table_order():
    table = compile_table([(r"circle", "shape"), (r"circ", "prefix")])
    assert match_labels(["circle"], table) == ["shape", "prefix"]


def test_count_matches_counts_texts_not_hits():
    table = compile_table([(r"\bgreat\b", "praise"), (r"\bwell done\b", "praise")])
    count, hits = count_matches(["Great, well done!", "ok", "great"], table)
    assert count == 2
    assert hits == ["Great, well done!", "great"]
