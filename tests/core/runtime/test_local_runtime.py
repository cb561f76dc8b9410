# tests/core/runtime/test_local_runtime.py
"""
Testes do LocalRuntime (fachada entregue ao script de modelo).

- pipeline_meta assíncrono, carregado sob demanda e cacheado
- task_type síncrono
- notify_progress valida [0, 100], registra evento, tolera sink com falha
- save_model / read_model via ModelStore
"""

import asyncio
import io
import math

import pytest

from sluice.core.exceptions import InvalidProgressValue, ModelNotFound
from sluice.core.pipeline.meta import PipelineMeta, StageSpec
from sluice.core.runtime import LocalRuntime, ModelStore, ProgressInfo, Runtime, TaskType


def _meta():
    return PipelineMeta(datasource=StageSpec("csv_table"), model=StageSpec("sklearn_classifier"))


def _runtime(ctx, table_source, **kwargs):
    kwargs.setdefault("meta", _meta())
    return LocalRuntime(
        data_source=table_source,
        context=ctx,
        model_store=ModelStore(root=ctx.workspace.model_dir, pipeline_id="p1"),
        **kwargs,
    )


def test_local_runtime_satisfies_protocol(ctx, table_source):
    assert isinstance(_runtime(ctx, table_source), Runtime)


def test_requires_meta_or_config_path(ctx, table_source):
    with pytest.raises(ValueError):
        LocalRuntime(
            data_source=table_source,
            context=ctx,
            model_store=ModelStore(root=ctx.workspace.model_dir, pipeline_id="p1"),
        )


def test_task_type_defaults_to_unknown(ctx, table_source):
    assert _runtime(ctx, table_source).task_type() is TaskType.UNKNOWN
    assert _runtime(ctx, table_source, task_type=TaskType.MODEL).task_type() is TaskType.MODEL


def test_pipeline_meta_is_loaded_lazily_from_file(ctx, table_source, tmp_path, pipeline_yaml):
    path = tmp_path / "pipeline.yaml"
    path.write_text(pipeline_yaml, encoding="utf-8")
    rt = LocalRuntime(
        data_source=table_source,
        context=ctx,
        model_store=ModelStore(root=ctx.workspace.model_dir, pipeline_id="p1"),
        config_path=path,
    )

    async def scenario():
        first = await rt.pipeline_meta()
        second = await rt.pipeline_meta()
        assert first is second
        assert first.model.ref == "sklearn_classifier"
        assert [s.ref for s in first.dataflow] == ["shuffle", "table_vectorize"]

    asyncio.run(scenario())


def test_data_source_is_exposed(ctx, table_source):
    assert _runtime(ctx, table_source).data_source is table_source


def test_notify_progress_records_event_and_calls_sink(ctx, table_source):
    received = []
    rt = _runtime(ctx, table_source, progress_sink=received.append)
    rt.notify_progress(ProgressInfo(progress_value=42.5, extend_data={"epoch": 1}))

    assert received == [ProgressInfo(42.5, {"epoch": 1})]
    ev = ctx.events_for("runtime")[-1]
    assert ev["message"] == "progress"
    assert ev["progress_value"] == 42.5
    assert ev["extend_data"] == {"epoch": 1}


@pytest.mark.parametrize("value", [-0.1, 100.5, math.nan, "50", True])
def test_notify_progress_rejects_out_of_range(ctx, table_source, value):
    with pytest.raises(InvalidProgressValue):
        _runtime(ctx, table_source).notify_progress(ProgressInfo(progress_value=value))


def test_notify_progress_boundaries_are_valid(ctx, table_source):
    rt = _runtime(ctx, table_source)
    rt.notify_progress(ProgressInfo(0))
    rt.notify_progress(ProgressInfo(100))
    assert len(ctx.events_for("runtime")) == 2


def test_failing_sink_becomes_warning(ctx, table_source):
    def sink(info):
        raise ConnectionError("collector down")

    rt = _runtime(ctx, table_source, progress_sink=sink)
    rt.notify_progress(ProgressInfo(10))
    assert ctx.warnings["runtime"] == ["progress sink failed: collector down"]
    assert ctx.events_for("runtime")[-1]["level"] == "warning"


def test_save_and_read_model(ctx, table_source, tmp_path):
    rt = _runtime(ctx, table_source)

    async def scenario():
        with pytest.raises(ModelNotFound):
            await rt.read_model()
        await rt.save_model(io.BytesIO(b"weights"), "model.bin")
        path = await rt.read_model()
        with open(path, "rb") as f:
            assert f.read() == b"weights"
        saved = [e for e in ctx.events_for("runtime") if e["message"] == "model saved"]
        assert saved[0]["filename"] == "model.bin"

    asyncio.run(scenario())


def test_task_type_runs_model():
    assert TaskType.ALL.runs_model and TaskType.MODEL.runs_model
    assert not TaskType.DATA.runs_model and not TaskType.UNKNOWN.runs_model
