"""Persistência canônica de artefatos de modelo (v1).

Modelos produzidos por scripts de treino são persistidos de forma
**explícita** e **rastreável**, indexados pela identidade do pipeline.

Decisões (v1):
- Layout: `<root>/<pipeline_id>/<filename>`
- Índice: `<root>/<pipeline_id>/model.json` aponta para o último artefato salvo
- Entrada: caminho (arquivo ou diretório, copiado) ou stream binário
  legível (copiado em blocos); o chamador não precisa saber qual é mais
  eficiente
- Escrita: a cópia vai para um diretório temporário em `<root>/<pipeline_id>/`
  e só substitui o artefato com `os.replace` depois de completa; uma falha
  no meio da cópia preserva o último modelo salvo
- Leitura: caminho do último artefato; ausência → `ModelNotFound`

Limites explícitos:
- Não serializa objetos de modelo (o script decide o formato)
- Não versiona múltiplos modelos por pipeline
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Union

from sluice.core.exceptions import InvalidModelFilename, ModelNotFound


INDEX_FILENAME = "model.json"
CHUNK_SIZE = 1024 * 1024

ModelSource = Union[str, "os.PathLike[str]", BinaryIO]


def _validate_filename(filename: Any) -> str:
    if not isinstance(filename, str) or not filename.strip():
        raise InvalidModelFilename(message="Model filename must be a non-empty string", details={"filename": repr(filename)})
    if filename in (".", "..") or filename == INDEX_FILENAME or Path(filename).name != filename or "\\" in filename:
        raise InvalidModelFilename(
            message="Model filename must be a plain file name",
            details={"filename": filename},
            hint="Use apenas o nome do arquivo; o diretório é definido pelo runtime.",
        )
    return filename


@dataclass(frozen=True)
class ModelArtifactMeta:
    """Metadata mínima (v1) de um modelo persistido."""

    filename: str
    path: str
    pipeline_id: str
    source: str
    bytes: int
    saved_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "path": self.path,
            "pipeline_id": self.pipeline_id,
            "source": self.source,
            "bytes": self.bytes,
            "saved_at": self.saved_at,
        }


class ModelStore:
    """Store canônica (v1) de modelos por identidade de pipeline."""

    def __init__(self, *, root: Union[str, Path], pipeline_id: str):
        if not isinstance(pipeline_id, str) or not pipeline_id.strip():
            raise ValueError("pipeline_id must be a non-empty string")
        self.root = Path(root)
        self.pipeline_id = pipeline_id

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------
    def pipeline_dir(self) -> Path:
        return self.root / self.pipeline_id

    def index_path(self) -> Path:
        return self.pipeline_dir() / INDEX_FILENAME

    # ------------------------------------------------------------------
    # Persist / Load
    # ------------------------------------------------------------------
    def save(self, source: ModelSource, filename: str) -> ModelArtifactMeta:
        """Persiste o modelo a partir de um caminho ou de um stream binário.

        Raises:
            InvalidModelFilename: Nome de arquivo inválido.
            FileNotFoundError: Caminho de origem inexistente.
            TypeError: Origem não é caminho nem stream legível.
        """
        filename = _validate_filename(filename)
        target = self.pipeline_dir() / filename
        target.parent.mkdir(parents=True, exist_ok=True)

        if isinstance(source, (str, os.PathLike)):
            src = Path(source)
            if not src.exists():
                raise FileNotFoundError(f"Model source not found: {src}")
            if src.resolve() != target.resolve():
                if src.is_dir():
                    self._install(target, lambda staged: shutil.copytree(src, staged))
                else:
                    self._install(target, lambda staged: shutil.copyfile(src, staged))
            kind = "path"
        elif hasattr(source, "read"):
            self._install(target, lambda staged: _copy_stream(source, staged))
            kind = "stream"
        else:
            raise TypeError(f"Model source must be a path or a readable stream, got {type(source).__name__}")

        meta = ModelArtifactMeta(
            filename=filename,
            path=str(target),
            pipeline_id=self.pipeline_id,
            source=kind,
            bytes=_size_of(target),
            saved_at=datetime.now(timezone.utc).isoformat(),
        )
        payload = json.dumps(meta.to_dict(), sort_keys=True)
        self._install(self.index_path(), lambda staged: staged.write_text(payload, encoding="utf-8"))
        return meta

    def _install(self, target: Path, write: Callable[[Path], Any]) -> None:
        """Escreve em área temporária e troca o artefato só após sucesso."""
        staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(self.pipeline_dir())))
        try:
            staged = staging / target.name
            write(staged)
            if target.is_dir() or (staged.is_dir() and target.exists()):
                # diretórios não são substituídos por os.replace: o anterior sai primeiro
                os.replace(target, staging / ".previous")
            os.replace(staged, target)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def read(self) -> str:
        """Retorna o caminho do último modelo salvo para este pipeline.

        Raises:
            ModelNotFound: Nenhum modelo salvo (ou artefato removido do disco).
        """
        index = self.index_path()
        if not index.exists():
            raise ModelNotFound(
                message="No model has been saved for this pipeline",
                details={"pipeline_id": self.pipeline_id, "store": str(self.root)},
                hint="Execute o stage de modelo (task ALL ou MODEL) antes de ler o modelo.",
            )
        meta = json.loads(index.read_text(encoding="utf-8"))
        path = Path(meta["path"])
        if not path.exists():
            raise ModelNotFound(
                message="Saved model artifact is missing from the store",
                details={"pipeline_id": self.pipeline_id, "path": str(path)},
            )
        return str(path)


def _copy_stream(stream: Any, path: Path) -> None:
    with path.open("wb") as out:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            if isinstance(chunk, str):
                raise TypeError("Model stream must be opened in binary mode")
            out.write(chunk)


def _size_of(path: Path) -> int:
    if path.is_dir():
        return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())
    return path.stat().st_size
