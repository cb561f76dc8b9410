"""
PipelineMeta — descrição estática de um pipeline.

Um pipeline declara, em YAML ou JSON:

    spec_version: "1"
    type: table-classification
    datasource:
      ref: csv_table
      options: {path: iris.csv, label: species, seed: 7}
    dataflow:
      - ref: table_vectorize
      - ref: "script:my_flow"
    model:
      ref: sklearn_classifier
      options: {estimator: random_forest}
    options:
      script_paths: [scripts]

Cada stage é um `StageSpec(ref, options)`. Um stage também pode ser
escrito como string simples (`ref` sem opções).

Decisões arquiteturais:
    - `pipeline_id` é o hash canônico do dict normalizado: é a identidade
      sob a qual o runtime persiste o modelo
    - `base_dir` (diretório do arquivo de origem) não participa da
      identidade; apenas resolve caminhos relativos de scripts
    - Erros de estrutura viram `InvalidPipelineConfigError`

Limites explícitos:
    - Não resolve referências de scripts (ver `ScriptRegistry`)
    - Não valida `options` de cada stage
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sluice.core.config.errors import InvalidPipelineConfigError
from sluice.core.config.hashing import compute_config_hash
from sluice.core.config.loader import load_config


SPEC_VERSION = "1"


@dataclass(frozen=True)
class StageSpec:
    """Referência a um script de stage + opções livres."""

    ref: str
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: Any, *, where: str) -> "StageSpec":
        if isinstance(value, str):
            value = {"ref": value}
        if not isinstance(value, dict):
            raise InvalidPipelineConfigError(
                f"Stage '{where}' deve ser string ou mapa, recebido: {type(value).__name__}"
            )
        unknown = set(value) - {"ref", "options"}
        if unknown:
            raise InvalidPipelineConfigError(f"Stage '{where}' possui chaves desconhecidas: {sorted(unknown)}")
        ref = value.get("ref")
        if not isinstance(ref, str) or not ref.strip():
            raise InvalidPipelineConfigError(f"Stage '{where}' requer 'ref' não vazio")
        options = value.get("options") or {}
        if not isinstance(options, dict):
            raise InvalidPipelineConfigError(f"Stage '{where}': 'options' deve ser mapa")
        return cls(ref=ref.strip(), options=dict(options))

    def to_dict(self) -> Dict[str, Any]:
        return {"ref": self.ref, "options": dict(self.options)}


@dataclass(frozen=True)
class PipelineMeta:
    """Descrição estática e serializável do pipeline."""

    datasource: StageSpec
    dataflow: List[StageSpec] = field(default_factory=list)
    model: Optional[StageSpec] = None
    type: str = "unknown"
    spec_version: str = SPEC_VERSION
    options: Dict[str, Any] = field(default_factory=dict)
    base_dir: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, base_dir: Optional[str] = None) -> "PipelineMeta":
        if not isinstance(data, dict):
            raise InvalidPipelineConfigError(f"Pipeline deve ser mapa, recebido: {type(data).__name__}")

        unknown = set(data) - {"spec_version", "type", "datasource", "dataflow", "model", "options"}
        if unknown:
            raise InvalidPipelineConfigError(f"Chaves desconhecidas no pipeline: {sorted(unknown)}")

        if data.get("datasource") is None:
            raise InvalidPipelineConfigError("Pipeline requer 'datasource'")
        datasource = StageSpec.from_value(data["datasource"], where="datasource")

        raw_flow = data.get("dataflow") or []
        if not isinstance(raw_flow, list):
            raise InvalidPipelineConfigError("'dataflow' deve ser lista")
        dataflow = [StageSpec.from_value(v, where=f"dataflow[{i}]") for i, v in enumerate(raw_flow)]

        model = None
        if data.get("model") is not None:
            model = StageSpec.from_value(data["model"], where="model")

        options = data.get("options") or {}
        if not isinstance(options, dict):
            raise InvalidPipelineConfigError("'options' deve ser mapa")

        return cls(
            datasource=datasource,
            dataflow=dataflow,
            model=model,
            type=str(data.get("type") or "unknown"),
            spec_version=str(data.get("spec_version") or SPEC_VERSION),
            options=dict(options),
            base_dir=base_dir,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spec_version": self.spec_version,
            "type": self.type,
            "datasource": self.datasource.to_dict(),
            "dataflow": [s.to_dict() for s in self.dataflow],
            "model": self.model.to_dict() if self.model is not None else None,
            "options": dict(self.options),
        }

    @property
    def pipeline_id(self) -> str:
        try:
            return compute_config_hash(self.to_dict())
        except TypeError as e:
            raise InvalidPipelineConfigError(f"Pipeline contém valores não serializáveis: {e}") from e

    def script_paths(self) -> List[Path]:
        """Diretórios de scripts declarados, resolvidos contra `base_dir`."""
        raw = self.options.get("script_paths") or []
        if isinstance(raw, str):
            raw = [raw]
        base = Path(self.base_dir) if self.base_dir else Path.cwd()
        return [p if p.is_absolute() else base / p for p in (Path(r) for r in raw)]


def load_pipeline_meta(
    path: Union[str, Path],
    local_path: Optional[Union[str, Path]] = None,
) -> PipelineMeta:
    """Carrega o arquivo de pipeline (+ override local) como `PipelineMeta`."""
    config = load_config(defaults_path=path, local_path=local_path)
    return PipelineMeta.from_dict(config, base_dir=str(Path(path).resolve().parent))
