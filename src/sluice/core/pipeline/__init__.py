"""
Pipeline do Sluice.

- **meta**: `StageSpec`, `PipelineMeta`, `load_pipeline_meta`
- **registry**: `ScriptRegistry` (ids builtin + refs `py:` / `script:`)
- **types**: `StageKind`, `StageStatus`, `StageResult`, `RunResult`
- **runner**: `PipelineRunner`, `run_pipeline`
"""

from .meta import PipelineMeta, StageSpec, load_pipeline_meta
from .registry import DuplicateScriptIdError, ScriptRegistry, parse_ref
from .runner import PipelineRunner, run_pipeline
from .types import RunResult, StageKind, StageResult, StageStatus

__all__ = [
    "PipelineMeta",
    "StageSpec",
    "load_pipeline_meta",
    "DuplicateScriptIdError",
    "ScriptRegistry",
    "parse_ref",
    "PipelineRunner",
    "run_pipeline",
    "RunResult",
    "StageKind",
    "StageResult",
    "StageStatus",
]
