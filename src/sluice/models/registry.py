"""
ModelRegistry: catálogo explícito de classificadores scikit-learn.

O entry `sklearn_classifier` escolhe o estimador por id declarado no
pipeline; nenhum modelo é descoberto dinamicamente e nenhum hiperparâmetro
é inferido a partir dos dados.

Catálogo padrão:
    - logistic_regression
    - random_forest (random_state fixo)
    - knn
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Type

from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier


@dataclass(frozen=True)
class ModelSpec:
    """Estimador suportado + parâmetros padrão."""

    model_id: str
    estimator_cls: Type[Any]
    default_params: Dict[str, Any] = field(default_factory=dict)

    def build(self, overrides: Optional[Dict[str, Any]] = None) -> Any:
        """Instancia o estimador (default_params + overrides), sem treinar."""
        params = dict(self.default_params)
        if overrides:
            params.update(overrides)
        return self.estimator_cls(**params)


class ModelRegistry:
    def __init__(self, specs: Optional[Iterable[ModelSpec]] = None):
        self._specs: Dict[str, ModelSpec] = {}
        for s in specs or ():
            self.register(s)

    @classmethod
    def default(cls) -> "ModelRegistry":
        return cls(specs=_default_specs())

    def register(self, spec: ModelSpec) -> None:
        if not isinstance(spec, ModelSpec):
            raise TypeError("spec must be a ModelSpec")
        if not isinstance(spec.model_id, str) or not spec.model_id.strip():
            raise ValueError("model_id must be a non-empty string")
        if spec.model_id in self._specs:
            raise ValueError(f"model_id already registered: {spec.model_id}")
        self._specs[spec.model_id] = spec

    def list_ids(self) -> List[str]:
        return sorted(self._specs)

    def get(self, model_id: str) -> ModelSpec:
        if model_id not in self._specs:
            raise KeyError(f"unknown model_id: {model_id}")
        return self._specs[model_id]

    def build(self, model_id: str, overrides: Optional[Dict[str, Any]] = None) -> Any:
        return self.get(model_id).build(overrides=overrides)


def _default_specs() -> List[ModelSpec]:
    return [
        ModelSpec(
            model_id="logistic_regression",
            estimator_cls=LogisticRegression,
            default_params={"C": 1.0, "max_iter": 1000},
        ),
        ModelSpec(
            model_id="random_forest",
            estimator_cls=RandomForestClassifier,
            default_params={"n_estimators": 100, "random_state": 42, "n_jobs": 1},
        ),
        ModelSpec(
            model_id="knn",
            estimator_cls=KNeighborsClassifier,
            default_params={"n_neighbors": 5},
        ),
    ]
