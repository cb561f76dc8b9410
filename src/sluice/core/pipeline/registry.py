"""
Registro de scripts de stage.

O `ScriptRegistry` resolve a referência declarada em um `StageSpec` para o
entry chamável do stage. Três formas de referência são aceitas:

    - `csv_table`                → script builtin registrado por id
    - `py:pacote.modulo[:attr]`  → módulo Python instalado (backend "py")
    - `script:nome[:attr]`       → módulo local do pipeline (backend "script")

O atributo padrão é `main`.

Invariantes:
    - Cada id builtin é único no registry
    - A ordem de registro é preservada

Limites explícitos:
    - Não executa entries
    - Não valida a assinatura do entry (apenas que é chamável)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

from sluice.core.context.bridge import PY_BACKEND, SCRIPT_BACKEND, ModuleBridge
from sluice.core.exceptions import ScriptResolutionError


DEFAULT_ENTRY_ATTR = "main"


class DuplicateScriptIdError(ValueError):
    """Dois scripts registrados com o mesmo id."""


def parse_ref(ref: str) -> Tuple[str, str, str]:
    """Decompõe uma referência em (backend, módulo, atributo).

    Para ids builtin o backend é `""` e o atributo é vazio.
    """
    if not isinstance(ref, str) or not ref.strip():
        raise ScriptResolutionError(message="Script reference must be a non-empty string", details={"ref": repr(ref)})
    ref = ref.strip()
    backend, sep, rest = ref.partition(":")
    if not sep:
        return "", ref, ""
    if backend not in (PY_BACKEND, SCRIPT_BACKEND):
        raise ScriptResolutionError(
            message=f"Unknown script backend '{backend}'",
            details={"ref": ref},
            hint="Use 'py:modulo[:attr]', 'script:nome[:attr]' ou um id builtin.",
        )
    module, _, attr = rest.partition(":")
    if not module:
        raise ScriptResolutionError(message="Script reference has no module name", details={"ref": ref})
    return backend, module, attr or DEFAULT_ENTRY_ATTR


@dataclass
class ScriptRegistry:
    """Registro de entries builtin + resolução de referências externas."""

    _entries: Dict[str, Callable[..., Any]] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, script_id: str, entry: Callable[..., Any]) -> None:
        if not isinstance(script_id, str) or not script_id.strip():
            raise ValueError("script_id must be a non-empty string")
        if ":" in script_id:
            raise ValueError("script_id must not contain ':'")
        if script_id in self._entries:
            raise DuplicateScriptIdError(f"Duplicate script id: {script_id}")
        if not callable(entry):
            raise TypeError(f"Entry for '{script_id}' is not callable")
        self._entries[script_id] = entry
        self._order.append(script_id)

    def get(self, script_id: str) -> Callable[..., Any]:
        return self._entries[script_id]

    def ids(self) -> List[str]:
        return list(self._order)

    def __contains__(self, script_id: object) -> bool:
        return script_id in self._entries

    async def resolve(self, ref: str, bridge: ModuleBridge) -> Callable[..., Any]:
        """Resolve `ref` para o entry chamável do stage.

        Raises:
            ScriptResolutionError: id desconhecido ou atributo ausente/não chamável.
            ModuleResolutionError: módulo não pôde ser carregado pela bridge.
        """
        backend, module_name, attr = parse_ref(ref)
        if not backend:
            if module_name not in self._entries:
                raise ScriptResolutionError(
                    message=f"Unknown builtin script '{module_name}'",
                    details={"ref": ref, "available": self.ids()},
                )
            return self._entries[module_name]

        module = await bridge.import_module(backend, module_name)
        entry = getattr(module, attr, None)
        if entry is None or not callable(entry):
            raise ScriptResolutionError(
                message=f"Module '{module_name}' has no callable '{attr}'",
                details={"ref": ref, "backend": backend, "attr": attr},
                hint="Exponha o entry do stage como função assíncrona no módulo.",
            )
        return entry
