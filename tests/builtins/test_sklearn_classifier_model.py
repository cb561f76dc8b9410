# tests/builtins/test_sklearn_classifier_model.py
import asyncio

import numpy as np
import pytest

from sluice.core.datasource import make_data_source
from sluice.core.exceptions import IncompatibleDataSource, ModelNotFound
from sluice.core.pipeline.meta import PipelineMeta, StageSpec
from sluice.core.runtime import LocalRuntime, ModelStore, TaskType
from sluice.core.types import Sample, TableColumn, TableSchema
from sluice.models import sklearn_classifier


def _vector_source():
    def _rows(n):
        out = []
        for i in range(n):
            out.append(Sample(0, np.array([i % 5, i % 3], dtype=np.float32)))
            out.append(Sample(1, np.array([10 + i % 5, 10 + i % 3], dtype=np.float32)))
        return out

    schema = TableSchema((TableColumn("x1", "number"), TableColumn("x2", "number")))
    return make_data_source(
        train=_rows(10),
        test=_rows(3),
        validation=_rows(2),
        table_schema=schema,
        data_keys=["x1", "x2"],
        label_map={0: "low", 1: "high"},
    )


def _runtime(source, ctx, tmp_path, sink=None):
    meta = PipelineMeta(datasource=StageSpec("mem"), model=StageSpec("sklearn_classifier"))
    return LocalRuntime(
        data_source=source,
        context=ctx,
        model_store=ModelStore(root=tmp_path / "models", pipeline_id=meta.pipeline_id),
        meta=meta,
        task_type=TaskType.ALL,
        progress_sink=sink,
    )


def test_sklearn_classifier_trains_saves_and_reloads(ctx, tmp_path):
    progress = []
    runtime = _runtime(_vector_source(), ctx, tmp_path, sink=progress.append)

    async def scenario():
        await sklearn_classifier.main(runtime, {"estimator": "logistic_regression", "batch_size": 4}, ctx)
        return await sklearn_classifier.load_model(runtime)

    model = asyncio.run(scenario())

    assert [p.progress_value for p in progress] == [10, 80, 100]
    assert progress[-1].extend_data == {"test_accuracy": 1.0, "validation_accuracy": 1.0}
    assert model.predict(np.array([[0.0, 0.0], [12.0, 11.0]], dtype=np.float32)).tolist() == [0, 1]
    trained = [e for e in ctx.events if e["message"] == "model trained"]
    assert trained and trained[0]["estimator"] == "logistic_regression"
    assert (ctx.workspace.cache_dir / "model.joblib").exists()


def test_sklearn_classifier_flattens_images(ctx, tmp_path, image_source):
    runtime = _runtime(image_source, ctx, tmp_path)

    async def scenario():
        await sklearn_classifier.main(
            runtime, {"estimator": "knn", "params": {"n_neighbors": 1}, "filename": "knn.joblib"}, ctx
        )
        return await runtime.read_model()

    path = asyncio.run(scenario())
    assert path.endswith("knn.joblib")


def test_sklearn_classifier_rejects_non_vectorized_tables(ctx, tmp_path, table_source):
    runtime = _runtime(table_source, ctx, tmp_path)
    with pytest.raises(IncompatibleDataSource):
        asyncio.run(sklearn_classifier.main(runtime, {}, ctx))
    with pytest.raises(ModelNotFound):
        asyncio.run(runtime.read_model())


def test_sklearn_classifier_unknown_estimator(ctx, tmp_path):
    runtime = _runtime(_vector_source(), ctx, tmp_path)
    with pytest.raises(KeyError):
        asyncio.run(sklearn_classifier.main(runtime, {"estimator": "svm"}, ctx))
