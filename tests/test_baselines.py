"""
Pytest tests for the logic and temporal baselines and the embedding table.
"""

from __future__ import annotations

import json
import math

import pytest

from backend_dbt.analysis_engine.baselines import (
    DEFAULT_TRANSITIONS,
    TransitionPolicy,
    delta_logic,
    delta_temporal,
)
from backend_dbt.analysis_engine.embeddings import (
    DEFAULT_EMBEDDINGS,
    EmbeddingTable,
    load_embeddings,
    vector_distance,
)
from backend_dbt.core.exceptions import ConfigurationError

LABELS = ("strongly-against", "against", "neutral", "support", "strongly-support")


# --- Logic baseline ---


def test_delta_logic_forbidden_transitions():
    assert delta_logic("support", "strongly-against") == 1
    assert delta_logic("strongly-support", "strongly-against") == 1
    assert delta_logic("against", "strongly-support") == 1
    assert delta_logic("strongly-against", "strongly-support") == 1


def test_delta_logic_allowed_transitions():
    assert delta_logic("neutral", "support") == 0
    assert delta_logic("support", "against") == 0
    assert delta_logic("against", "strongly-against") == 0
    # Unknown labels are never forbidden
    assert delta_logic("yes", "no") == 0


def test_delta_logic_first_vote_and_unchanged():
    for label in LABELS:
        assert delta_logic(None, label) == 0
        assert delta_logic("", label) == 0
        assert delta_logic(label, label) == 0
    assert delta_logic("support", None) == 0


def test_transition_policy_is_immutable_and_rejects_string_targets():
    assert DEFAULT_TRANSITIONS.forbidden_from("support") == frozenset({"strongly-against"})
    assert DEFAULT_TRANSITIONS.forbidden_from("neutral") == frozenset()
    policy = TransitionPolicy({"yes": ["no"]})
    assert policy.is_forbidden("yes", "no")
    assert not policy.is_forbidden("no", "yes")
    with pytest.raises(ConfigurationError):
        TransitionPolicy({"yes": "no"})


# --- Temporal baseline ---


def test_delta_temporal_range_and_symmetry():
    for a in LABELS:
        for b in LABELS:
            d = delta_temporal(a, b)
            assert 0.0 <= d <= 1.0
            assert d == pytest.approx(delta_temporal(b, a))
        assert delta_temporal(a, a) == 0.0


def test_delta_temporal_value():
    """neutral -> support: |(1, 0.5, 0.2)| / 2."""
    expected = math.sqrt(1 + 0.25 + 0.04) / 2.0
    assert delta_temporal("neutral", "support") == pytest.approx(expected)
    # Larger cap, smaller delta
    assert delta_temporal("neutral", "support", cap=4.0) == pytest.approx(expected / 2)


def test_delta_temporal_saturates_at_one():
    assert delta_temporal("strongly-against", "strongly-support") == 1.0
    assert delta_temporal("support", "strongly-against") == 1.0


def test_delta_temporal_missing_or_unmapped_label_is_zero():
    assert delta_temporal(None, "support") == 0.0
    assert delta_temporal("support", None) == 0.0
    assert delta_temporal("maybe", "support") == 0.0
    assert delta_temporal("support", "maybe") == 0.0


@pytest.mark.parametrize("cap", [0, -1.0, float("nan"), float("inf"), "abc"])
def test_delta_temporal_invalid_cap(cap):
    with pytest.raises(ConfigurationError):
        delta_temporal("neutral", "support", cap=cap)


# --- Embedding table ---


def test_default_embeddings_shape_and_read_only():
    assert DEFAULT_EMBEDDINGS.dimension == 3
    assert set(DEFAULT_EMBEDDINGS.labels) == set(LABELS)
    vec = DEFAULT_EMBEDDINGS.get("support")
    assert vec is not None
    with pytest.raises(ValueError):
        vec[0] = 99.0
    assert DEFAULT_EMBEDDINGS.get(None) is None
    assert "maybe" not in DEFAULT_EMBEDDINGS


def test_embedding_table_rejects_bad_vectors():
    with pytest.raises(ConfigurationError):
        EmbeddingTable({"a": [1.0, 2.0], "b": [1.0]})
    with pytest.raises(ConfigurationError):
        EmbeddingTable({"a": [1.0, float("nan")]})
    with pytest.raises(ConfigurationError):
        EmbeddingTable({"a": []})
    with pytest.raises(ConfigurationError):
        EmbeddingTable({"a": ["x", "y"]})


def test_vector_distance():
    a = DEFAULT_EMBEDDINGS.get("neutral")
    b = DEFAULT_EMBEDDINGS.get("support")
    assert vector_distance(a, b) == pytest.approx(math.sqrt(1.29))


def test_load_embeddings_default_and_file(tmp_path):
    assert load_embeddings(None) is DEFAULT_EMBEDDINGS

    path = tmp_path / "emb.json"
    path.write_text(json.dumps({"yes": [1.0, 0.0], "no": [-1.0, 0.0]}), encoding="utf-8")
    table = load_embeddings(path)
    assert table.dimension == 2
    assert len(table) == 2
    # Distance 2 over cap 4
    assert delta_temporal("yes", "no", cap=4.0, embeddings=table) == pytest.approx(0.5)


def test_load_embeddings_invalid_files(tmp_path):
    with pytest.raises(ConfigurationError):
        load_embeddings(tmp_path / "missing.json")

    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_embeddings(bad_json)

    empty = tmp_path / "empty.json"
    empty.write_text("{}", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_embeddings(empty)

    mixed = tmp_path / "mixed.json"
    mixed.write_text(json.dumps({"yes": [1, 2, 3], "no": [1, 2]}), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_embeddings(mixed)
