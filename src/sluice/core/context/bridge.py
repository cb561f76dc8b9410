"""
Module bridge: carregamento de módulos sob demanda para scripts.

Scripts de pipeline carregam módulos auxiliares de dois ecossistemas:
    - "py":     pacotes Python instalados no ambiente (importlib)
    - "script": módulos locais do pipeline, carregados de diretórios de
                scripts declarados (arquivo `<nome>.py` ou pacote `<nome>/`)

Ambos são backends nomeados de uma única capacidade (`ModuleBridge`);
novos backends são registrados sem alterar a interface do contexto.

Decisões arquiteturais:
    - O carregamento roda fora do event loop (`asyncio.to_thread`)
    - Handles são cacheados por (backend, nome): imports repetidos na mesma
      execução devolvem o mesmo objeto, sem nova carga com efeitos colaterais
    - Cargas concorrentes do mesmo nome são serializadas por um lock por chave
    - Falhas não são cacheadas e viram `ModuleResolutionError`; o processo
      nunca é encerrado por uma falha de resolução

Limites explícitos:
    - Não instala pacotes
    - Não descarrega módulos
"""

from __future__ import annotations

import asyncio
import importlib
import importlib.util
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from sluice.core.exceptions import ModuleResolutionError


PY_BACKEND = "py"
SCRIPT_BACKEND = "script"


@runtime_checkable
class ModuleBackend(Protocol):
    name: str

    def load(self, module_name: str) -> Any:
        """Carrega o módulo de forma síncrona; erros de import propagam."""
        ...


class PythonModuleBackend:
    name = PY_BACKEND

    def load(self, module_name: str) -> Any:
        return importlib.import_module(module_name)


class ScriptModuleBackend:
    """Carrega módulos a partir de diretórios de scripts do pipeline."""

    name = SCRIPT_BACKEND

    def __init__(self, search_paths: Sequence[Union[str, Path]] = ()):
        self.search_paths: List[Path] = [Path(p) for p in search_paths]

    def _locate(self, module_name: str) -> Path:
        if not module_name or "/" in module_name or "\\" in module_name or module_name.startswith("."):
            raise ImportError(f"Invalid script module name: {module_name!r}")
        rel = Path(*module_name.split("."))
        for base in self.search_paths:
            candidate = base / rel.with_suffix(".py")
            if candidate.is_file():
                return candidate
            package = base / rel / "__init__.py"
            if package.is_file():
                return package
        raise ModuleNotFoundError(
            f"Script module {module_name!r} not found in {[str(p) for p in self.search_paths]}"
        )

    def load(self, module_name: str) -> Any:
        path = self._locate(module_name)
        qualified = f"sluice_scripts.{module_name}"
        spec = importlib.util.spec_from_file_location(
            qualified,
            path,
            submodule_search_locations=[str(path.parent)] if path.name == "__init__.py" else None,
        )
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot build import spec for {path}")
        module = importlib.util.module_from_spec(spec)
        # registrado antes da execução para suportar dataclasses/pickle no script
        sys.modules[qualified] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(qualified, None)
            raise
        return module


class ModuleBridge:
    """Capacidade única de import com backends nomeados e cache por nome."""

    def __init__(self, backends: Optional[Sequence[ModuleBackend]] = None):
        self._backends: Dict[str, ModuleBackend] = {}
        self._cache: Dict[Tuple[str, str], Any] = {}
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        for backend in backends if backends is not None else (PythonModuleBackend(),):
            self.register_backend(backend)

    def register_backend(self, backend: ModuleBackend) -> None:
        name = getattr(backend, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise ValueError("backend.name must be a non-empty string")
        if name in self._backends:
            raise ValueError(f"Module backend already registered: {name}")
        self._backends[name] = backend

    @property
    def backends(self) -> List[str]:
        return sorted(self._backends)

    def is_loaded(self, backend: str, module_name: str) -> bool:
        return (backend, module_name) in self._cache

    async def import_module(self, backend: str, module_name: str) -> Any:
        """Importa `module_name` pelo backend indicado (idempotente por nome).

        Raises:
            ModuleResolutionError: Backend desconhecido ou módulo não carregável.
        """
        if backend not in self._backends:
            raise ModuleResolutionError(
                message=f"Unknown module backend: {backend}",
                details={"backend": backend, "module": module_name, "available": self.backends},
            )

        key = (backend, module_name)
        if key in self._cache:
            return self._cache[key]

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self._cache:
                return self._cache[key]
            try:
                module = await asyncio.to_thread(self._backends[backend].load, module_name)
            except Exception as e:
                raise ModuleResolutionError(
                    message=f"Cannot load module {module_name!r} ({backend})",
                    details={
                        "backend": backend,
                        "module": module_name,
                        "cause": e.__class__.__name__,
                        "cause_message": str(e),
                    },
                    hint="Verifique o nome do módulo e se ele está instalado ou presente no diretório de scripts.",
                ) from e
            self._cache[key] = module
            return module
