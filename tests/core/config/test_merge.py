# tests/core/config/test_merge.py
"""
Testes da política de deep-merge.

- escalares são sobrescritos
- dicts são mesclados recursivamente
- listas são sobrescritas integralmente (a lista de dataflows nunca é
  mesclada elemento a elemento)
- conflitos de tipo são rejeitados
- inputs não são mutados
"""

import pytest

from sluice.core.config.errors import ConfigTypeConflictError
from sluice.core.config.merge import deep_merge


def test_merge_simple_override_without_mutation():
    base = {"a": 1, "b": 2}
    override = {"b": 99}
    out = deep_merge(base, override)
    assert out == {"a": 1, "b": 99}
    assert base == {"a": 1, "b": 2}
    assert override == {"b": 99}


def test_merge_nested_dict():
    base = {"model": {"ref": "sklearn_classifier", "options": {"estimator": "knn", "batch_size": 64}}}
    override = {"model": {"options": {"estimator": "random_forest"}}}
    out = deep_merge(base, override)
    assert out["model"]["options"] == {"estimator": "random_forest", "batch_size": 64}
    assert out["model"]["ref"] == "sklearn_classifier"


def test_merge_list_override_total():
    base = {"dataflow": [{"ref": "shuffle"}, {"ref": "table_vectorize"}]}
    override = {"dataflow": [{"ref": "table_vectorize"}]}
    assert deep_merge(base, override) == {"dataflow": [{"ref": "table_vectorize"}]}


def test_merge_int_and_float_are_compatible():
    assert deep_merge({"test_size": 1}, {"test_size": 0.3}) == {"test_size": 0.3}


def test_merge_none_sets_or_clears_optional_key():
    assert deep_merge({"validation_size": None}, {"validation_size": 0.1}) == {"validation_size": 0.1}
    assert deep_merge({"validation_size": 0.1}, {"validation_size": None}) == {"validation_size": None}


def test_merge_type_conflict_raises():
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"model": {"ref": "x"}}, {"model": "py:my_model"})


def test_merge_bool_vs_int_is_conflict():
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"stratify": True}, {"stratify": 1})


def test_merge_requires_dicts_at_root():
    with pytest.raises(ConfigTypeConflictError):
        deep_merge({"a": 1}, ["a"])  # type: ignore[arg-type]
