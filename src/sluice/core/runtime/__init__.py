"""
Runtime do Sluice.

- **types**: `TaskType`, `ProgressInfo`
- **model_store**: `ModelStore` (persistência de modelos por pipeline)
- **runtime**: `Runtime` (Protocol) e `LocalRuntime`
"""

from .model_store import ModelArtifactMeta, ModelStore
from .runtime import LocalRuntime, Runtime
from .types import ProgressInfo, TaskType

__all__ = [
    "ModelArtifactMeta",
    "ModelStore",
    "LocalRuntime",
    "Runtime",
    "ProgressInfo",
    "TaskType",
]
