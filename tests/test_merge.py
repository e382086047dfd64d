"""
Unit tests for schema merging and similarity grouping.
"""

import pytest
from jsonshape.inference import (
    SchemaInferrer, InferenceConfig, InferredSchema, InferrerState, TypeTag, InvalidStateError,
    merge_schemas, merge_all, group_similar_schemas, jaccard_similarity, schema_similarity
)


def build(records, config=None, finalize=True):
    inferrer = SchemaInferrer(config)
    for record in records:
        inferrer.add_value(record)
    return inferrer.finalize() if finalize else inferrer


@pytest.fixture
def shards():
    """Three partial schemas over disjoint record subsets."""
    a = build([{"id": 1, "name": "Alice", "score": 10}, {"id": 2, "name": "Bob"}])
    b = build([{"id": 3, "name": "Carol", "score": 20.5}, {"id": 4, "email": "dan@example.com"}])
    c = build([{"id": 5, "name": 7, "tags": ["x"]}, {"id": 6, "name": None, "score": -3}])
    return a, b, c


def assert_equivalent(left: InferredSchema, right: InferredSchema):
    assert left.record_count == right.record_count
    assert set(left.fields) == set(right.fields)
    assert set(left.profiles) == set(right.profiles)
    for path, field in left.fields.items():
        other = right[path]
        assert field.field_type == other.field_type
        assert field.required == other.required
        assert field.nullable == other.nullable
        assert field.format == other.format
        assert field.occurrence_count == other.occurrence_count
        if field.numeric_range is None:
            assert other.numeric_range is None
        else:
            assert field.numeric_range[:2] == other.numeric_range[:2]
            assert field.numeric_range[2] == pytest.approx(other.numeric_range[2])


def test_merge_is_associative_and_commutative(shards):
    a, b, c = shards
    left = merge_schemas(merge_schemas(a, b), c)
    right = merge_schemas(a, merge_schemas(b, c))
    swapped = merge_schemas(b, merge_schemas(a, c))

    assert_equivalent(left, right)
    assert_equivalent(left, swapped)
    assert left.record_count == 6
    assert left["name"].field_type == frozenset({TypeTag.STRING, TypeTag.INTEGER})
    assert left["score"].field_type == TypeTag.NUMBER
    assert left["score"].numeric_range[:2] == (-3, 20.5)
    assert left["id"].required == True
    assert left["name"].nullable == True


def test_merge_matches_single_pass(shards):
    """Merging shards gives the same classification as one inferrer over all records."""
    records = [
        {"id": 1, "name": "Alice", "score": 10}, {"id": 2, "name": "Bob"},
        {"id": 3, "name": "Carol", "score": 20.5}, {"id": 4, "email": "dan@example.com"},
        {"id": 5, "name": 7, "tags": ["x"]}, {"id": 6, "name": None, "score": -3},
    ]
    assert_equivalent(merge_all(shards), build(records))


def test_self_merge_doubles_counts(shards):
    a = shards[0]
    doubled = merge_schemas(a, a)

    assert doubled.record_count == 2 * a.record_count
    for path, field in a.fields.items():
        assert doubled[path].occurrence_count == 2 * field.occurrence_count
        assert doubled[path].field_type == field.field_type
        assert doubled[path].format == field.format
        assert doubled[path].required == field.required
        if field.numeric_range is not None:
            assert doubled[path].numeric_range[:2] == field.numeric_range[:2]
    for path, profile in a.profiles.items():
        assert doubled.profiles[path].value_count == 2 * profile.value_count


def test_merge_does_not_mutate_inputs(shards):
    a, b, _ = shards
    before = a.profiles["id"].occurrence_count
    merge_schemas(a, b)
    assert a.profiles["id"].occurrence_count == before
    assert a.record_count == 2


def test_merge_reapplies_frequency_threshold():
    """A path filtered out of one shard can reappear once the counts are combined."""
    config = InferenceConfig(min_field_frequency=0.5)
    sparse = build([{"id": i, "x": 1} if i == 0 else {"id": i} for i in range(10)], config)
    dense = build([{"id": i, "x": 1} for i in range(10)], config)

    assert "x" not in sparse
    merged = merge_schemas(sparse, dense)
    assert merged.record_count == 20
    assert merged["x"].frequency == pytest.approx(11 / 20)
    assert merged["x"].required == False


def test_merge_format_counts():
    left = build([{"contact": f"u{i}@example.com"} for i in range(5)])
    right = build([{"contact": f"u{i}@example.com"} for i in range(4)] + [{"contact": "unknown"}])
    merged = merge_schemas(left, right)
    assert merged["contact"].format == "email"
    assert merged.profiles["contact"].format_matches == {"email": 9}


def test_merge_in_progress_inferrers():
    left = build([{"a": 1}, {"a": 2}], finalize=False)
    right = build([{"a": 3.5, "b": "x"}], finalize=False)
    right.add_json_batch(["oops"])

    merged = merge_schemas(left, right)
    assert isinstance(merged, SchemaInferrer)
    assert merged.state == InferrerState.ACCUMULATING
    stats = merged.stats()
    assert stats.records_sampled == 3
    assert stats.parse_failures == 1

    # The merged inferrer keeps accumulating independently
    merged.add_value({"a": 4})
    schema = merged.finalize()
    assert schema.record_count == 4
    assert schema["a"].field_type == TypeTag.NUMBER
    assert left.stats().records_sampled == 2
    assert not left.is_finalized


def test_merge_finalized_inferrer_is_rejected():
    left = build([{"a": 1}], finalize=False)
    left.finalize()
    right = build([{"a": 2}], finalize=False)
    with pytest.raises(InvalidStateError):
        merge_schemas(left, right)


def test_merge_mixed_kinds_is_rejected():
    with pytest.raises(TypeError):
        merge_schemas(build([{"a": 1}]), build([{"a": 1}], finalize=False))


def test_merge_all_requires_input():
    with pytest.raises(ValueError):
        merge_all([])


def test_jaccard_similarity():
    assert jaccard_similarity(frozenset(), frozenset()) == 1.0
    assert jaccard_similarity(frozenset({1, 2}), frozenset({2, 3})) == pytest.approx(1 / 3)
    assert jaccard_similarity(frozenset({1}), frozenset({1})) == 1.0


@pytest.fixture
def similar_pair():
    a = build([{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}])
    b = build([{"id": 3, "name": "Carol", "address": "1 Main St"}])
    return a, b


def test_grouping_threshold(similar_pair):
    a, b = similar_pair
    assert schema_similarity(a, b) == pytest.approx(2 / 3)

    groups = group_similar_schemas([a, b], threshold=0.95)
    assert len(groups) == 2
    assert [g.members for g in groups] == [[0], [1]]

    groups = group_similar_schemas([a, b], threshold=0.5)
    assert len(groups) == 1
    assert groups[0].members == [0, 1]
    assert groups[0].representative.record_count == 3
    assert "address" in groups[0].representative


def test_grouping_default_threshold(similar_pair):
    assert len(group_similar_schemas(list(similar_pair))) == 2


def test_grouping_by_partition_key(similar_pair):
    a, b = similar_pair
    c = build([{"id": 9, "name": "Zed"}])
    groups = group_similar_schemas({"eu": a, "us": b, "apac": c}, threshold=0.95)
    assert [g.members for g in groups] == [["eu", "apac"], ["us"]]
    assert [g.group_id for g in groups] == [0, 1]
    assert groups[0].representative.record_count == 3
    assert groups[0].size == 2


def test_grouping_type_changes_signature():
    a = build([{"id": 1}])
    b = build([{"id": "one"}])
    assert schema_similarity(a, b) == 0.0
    assert len(group_similar_schemas([a, b], threshold=0.5)) == 2


def test_grouping_rejects_bad_threshold(similar_pair):
    with pytest.raises(ValueError):
        group_similar_schemas(list(similar_pair), threshold=1.5)
