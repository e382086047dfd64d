"""
Unit tests for the type resolver and the per-path field profile.
"""

import pytest
from jsonshape.inference import InferenceConfig, TypeTag, FieldProfile, NumericStats
from jsonshape.inference.profile import classify, promote, resolve_type


@pytest.fixture
def config():
    return InferenceConfig()


def test_classify():
    """Test type classification of parsed JSON values."""
    assert classify(None) == TypeTag.NULL
    assert classify(True) == TypeTag.BOOLEAN
    assert classify(42) == TypeTag.INTEGER
    assert classify(3.14) == TypeTag.NUMBER
    assert classify("hello") == TypeTag.STRING
    assert classify([1, 2, 3]) == TypeTag.ARRAY
    assert classify([]) == TypeTag.ARRAY
    assert classify({"key": "value"}) == TypeTag.OBJECT


def test_classify_rejects_non_json():
    with pytest.raises(TypeError):
        classify(object())


def test_promote_is_one_directional():
    counts = {TypeTag.INTEGER: 3, TypeTag.NUMBER: 2}
    assert promote(counts) == {TypeTag.NUMBER: 5}
    assert promote({TypeTag.INTEGER: 1}) == {TypeTag.INTEGER: 1}


def test_resolve_type():
    assert resolve_type({}) == TypeTag.NULL
    assert resolve_type({TypeTag.STRING: 4}) == TypeTag.STRING
    assert resolve_type({TypeTag.STRING: 1, TypeTag.INTEGER: 1}) == frozenset({TypeTag.STRING, TypeTag.INTEGER})


def test_integer_then_number_promotes(config):
    profile = FieldProfile("value")
    profile.observe(1, config)
    profile.observe(2.5, config)
    assert profile.resolved_type == TypeTag.NUMBER

    profile = FieldProfile("value")
    profile.observe(2.5, config)
    profile.observe(1, config)
    assert profile.resolved_type == TypeTag.NUMBER
    assert profile.type_counts == {TypeTag.NUMBER: 2}


def test_string_then_integer_is_mixed(config):
    profile = FieldProfile("value")
    profile.observe("a", config)
    profile.observe(1, config)
    assert profile.resolved_type == frozenset({TypeTag.STRING, TypeTag.INTEGER})


def test_mixed_never_reverts(config):
    profile = FieldProfile("value")
    for value in ["a", 1, 2.5, "b", 3]:
        profile.observe(value, config)
    assert profile.resolved_type == frozenset({TypeTag.STRING, TypeTag.NUMBER})


def test_null_counts(config):
    profile = FieldProfile("age")
    profile.observe(None, config)
    assert profile.resolved_type == TypeTag.NULL
    assert profile.null_count == 1
    assert profile.type_counts == {}

    profile.observe(30, config)
    assert profile.resolved_type == TypeTag.INTEGER
    assert profile.nullable == True
    assert profile.occurrence_count == 2


def test_first_in_record(config):
    """Repeated observations within one record count once towards occurrence."""
    profile = FieldProfile("tags.[]", "tags", "[]")
    profile.observe("a", config, first_in_record=True)
    profile.observe("b", config, first_in_record=False)
    assert profile.occurrence_count == 1
    assert profile.value_count == 2


def test_numeric_stats_incremental():
    stats = NumericStats()
    for value in [10, 20, 30]:
        stats.update(value)
    assert stats.min == 10
    assert stats.max == 30
    assert stats.mean == pytest.approx(20.0)
    assert stats.count == 3


def test_numeric_stats_merge_is_weighted():
    left = NumericStats()
    for value in [1, 2, 3]:
        left.update(value)
    right = NumericStats()
    right.update(10)

    merged = left.merge(right)
    assert merged.min == 1
    assert merged.max == 10
    assert merged.count == 4
    assert merged.mean == pytest.approx(4.0)
    # Inputs are left alone
    assert left.count == 3


def test_numeric_stats_skip_non_finite():
    stats = NumericStats()
    stats.update(float("nan"))
    stats.update(5)
    assert stats.count == 1
    assert stats.min == 5


def test_examples_bounded_and_distinct():
    config = InferenceConfig(max_examples=2)
    profile = FieldProfile("name")
    for value in ["a", "a", "b", "c"]:
        profile.observe(value, config)
    assert profile.examples == ["a", "b"]


def test_examples_keep_json_types_apart(config):
    profile = FieldProfile("flag")
    profile.observe(1, config)
    profile.observe(True, config)
    assert profile.examples == [1, True]


def test_examples_disabled():
    config = InferenceConfig(collect_examples=False)
    profile = FieldProfile("name")
    profile.observe("a", config)
    assert profile.examples == []


def test_format_matches_counted_for_strings_only(config):
    profile = FieldProfile("contact")
    profile.observe("bob@example.com", config)
    profile.observe("not an email", config)
    profile.observe(5, config)
    assert profile.format_matches == {"email": 1}
    assert profile.string_count == 2


def test_format_detection_disabled():
    config = InferenceConfig(detect_formats=False)
    profile = FieldProfile("contact")
    profile.observe("bob@example.com", config)
    assert profile.format_matches == {}


def test_merge_profiles(config):
    left = FieldProfile("value")
    left.observe(1, config)
    left.observe(None, config)
    right = FieldProfile("value")
    right.observe(2.5, config)
    right.observe("x", config)

    merged = left.merge(right, max_examples=5)
    assert merged.occurrence_count == 4
    assert merged.null_count == 1
    assert merged.resolved_type == frozenset({TypeTag.NUMBER, TypeTag.STRING})
    assert merged.numeric_stats.min == 1
    assert merged.numeric_stats.max == 2.5
    assert merged.examples == [1, 2.5, "x"]
    # Neither side is modified
    assert left.occurrence_count == 2
    assert left.resolved_type == TypeTag.INTEGER


def test_merge_prefers_left_examples(config):
    left = FieldProfile("name")
    for value in ["a", "b"]:
        left.observe(value, config)
    right = FieldProfile("name")
    for value in ["c", "a"]:
        right.observe(value, config)

    assert left.merge(right, max_examples=3).examples == ["a", "b", "c"]
    assert right.merge(left, max_examples=2).examples == ["c", "a"]


def test_merge_rejects_other_path(config):
    with pytest.raises(ValueError):
        FieldProfile("a").merge(FieldProfile("b"), max_examples=5)


def test_profile_dict_round_trip(config):
    profile = FieldProfile("user.age", "user", "age")
    for value in [30, None, 41]:
        profile.observe(value, config)

    restored = FieldProfile.from_dict(profile.to_dict())
    assert restored.path == "user.age"
    assert restored.parent == "user"
    assert restored.key == "age"
    assert restored.type_counts == profile.type_counts
    assert restored.numeric_stats == profile.numeric_stats
    assert restored.examples == [30, 41]
    assert restored.null_count == 1


def test_non_finite_numbers_leave_no_stats(config):
    profile = FieldProfile("v")
    profile.observe(float("inf"), config)

    assert profile.numeric_stats is None
    assert profile.examples == []
    assert profile.type_counts == {TypeTag.NUMBER: 1}

    profile.observe(3, config)
    assert profile.numeric_stats.count == 1
    assert profile.examples == [3]
