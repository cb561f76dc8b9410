# tests/core/context/test_context_logging.py
"""
Testes do event log estruturado e dos warnings do ExecutionContext.
"""

from sluice import datakit


def test_structured_log_event(ctx):
    ctx.log(stage_id="datasource", level="info", message="hello", rows=3)

    ev = ctx.events[-1]
    assert ev["run_id"] == ctx.run_id
    assert ev["stage_id"] == "datasource"
    assert ev["level"] == "info"
    assert ev["message"] == "hello"
    assert ev["rows"] == 3
    assert "timestamp" in ev


def test_warning_collection(ctx):
    ctx.add_warning(stage_id="dataflow[0]", message="column dropped")
    ctx.add_warning(stage_id="dataflow[0]", message="nan filled")
    assert ctx.warnings["dataflow[0]"] == ["column dropped", "nan filled"]


def test_events_for_filters_by_stage(ctx):
    ctx.log(stage_id="a", level="info", message="1")
    ctx.log(stage_id="b", level="info", message="2")
    assert [e["message"] for e in ctx.events_for("b")] == ["2"]


def test_context_exposes_workspace_and_datakit(ctx, workspace):
    assert ctx.workspace is workspace
    assert ctx.datakit is datakit
    assert hasattr(ctx.datakit, "make_data_source")
