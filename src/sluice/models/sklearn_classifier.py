"""
Modelo builtin: `sklearn_classifier` (v1).

Treina um classificador do `ModelRegistry` sobre o split de treino do
data source final e persiste o estimador via `Runtime.save_model`.

Opções:
    estimator: id no registry (default "logistic_regression")
    params: overrides de hiperparâmetros
    batch_size: tamanho do lote de leitura (default 256)
    filename: nome do artefato (default "model.joblib")

Fluxo:
    1. lê train (e test/validation, se houver) em lotes → matrizes numpy
    2. `fit` fora do event loop
    3. accuracy em test e validation
    4. `joblib.dump` em `workspace.cache_dir`, depois `runtime.save_model`

Progresso reportado: 10 (dados lidos), 80 (treinado), 100 (salvo).

Requisitos:
    - `data` das amostras deve ser array-like de forma fixa (use
      `table_vectorize` para tabelas); imagens são achatadas
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Tuple

import joblib
import numpy as np
from sklearn.metrics import accuracy_score

from sluice.core.context.context import ExecutionContext
from sluice.core.exceptions import IncompatibleDataSource
from sluice.core.runtime.runtime import Runtime
from sluice.core.runtime.types import ProgressInfo
from sluice.datakit import load_arrays

from .registry import ModelRegistry


STAGE_ID = "model"
DEFAULT_FILENAME = "model.joblib"


async def _arrays(accessor: Any, batch_size: int, split: str) -> Tuple[np.ndarray, np.ndarray]:
    try:
        X, y = await load_arrays(accessor, batch_size=batch_size, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise IncompatibleDataSource(
            message=f"Samples of split '{split}' are not fixed-shape numeric arrays",
            details={"split": split, "cause": str(e)},
            hint="Inclua um dataflow de vetorização (ex.: table_vectorize) antes do modelo.",
        ) from e
    if len(X) == 0:
        return X.reshape(0, 0), y
    return X.reshape(len(X), -1), y


async def main(runtime: Runtime, options: Dict[str, Any], context: ExecutionContext) -> None:
    registry = ModelRegistry.default()
    estimator_id = options.get("estimator", "logistic_regression")
    estimator = registry.build(estimator_id, overrides=options.get("params") or {})
    batch_size = int(options.get("batch_size", 256))
    filename = options.get("filename", DEFAULT_FILENAME)

    source = runtime.data_source
    X_train, y_train = await _arrays(source.train, batch_size, "train")
    if len(X_train) == 0:
        raise IncompatibleDataSource(message="Training split is empty", details={"split": "train"})
    runtime.notify_progress(ProgressInfo(progress_value=10, extend_data={"train": int(len(X_train))}))

    await asyncio.to_thread(estimator.fit, X_train, y_train)
    runtime.notify_progress(ProgressInfo(progress_value=80, extend_data={"estimator": estimator_id}))

    metrics: Dict[str, Optional[float]] = {}
    splits = [("test", source.test)]
    validation = getattr(source, "validation", None)
    if validation is not None:
        splits.append(("validation", validation))
    for name, accessor in splits:
        X, y = await _arrays(accessor, batch_size, name)
        metrics[f"{name}_accuracy"] = float(accuracy_score(y, estimator.predict(X))) if len(X) else None

    local_path = context.workspace.cache_dir / filename
    await asyncio.to_thread(joblib.dump, estimator, local_path)
    await runtime.save_model(str(local_path), filename)

    context.log(stage_id=STAGE_ID, level="info", message="model trained", estimator=estimator_id, **metrics)
    runtime.notify_progress(ProgressInfo(progress_value=100, extend_data=metrics))


async def load_model(runtime: Runtime) -> Any:
    """Recarrega o último estimador salvo para o pipeline do runtime."""
    path = await runtime.read_model()
    return await asyncio.to_thread(joblib.load, path)
