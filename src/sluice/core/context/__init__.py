"""
Contexto de execução do Sluice.

- **workspace**: `Workspace` (data/cache/model, lock exclusivo por run)
- **bridge**: `ModuleBridge` e backends `py` / `script`
- **context**: `ExecutionContext`, entregue a todo script
"""

from .bridge import (
    PY_BACKEND,
    SCRIPT_BACKEND,
    ModuleBackend,
    ModuleBridge,
    PythonModuleBackend,
    ScriptModuleBackend,
)
from .context import ExecutionContext
from .workspace import Workspace

__all__ = [
    "PY_BACKEND",
    "SCRIPT_BACKEND",
    "ModuleBackend",
    "ModuleBridge",
    "PythonModuleBackend",
    "ScriptModuleBackend",
    "ExecutionContext",
    "Workspace",
]
