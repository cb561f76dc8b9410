"""
Sluice — contrato de data sources, dataflows e modelos para pipelines de ML.

Um pipeline Sluice conecta três tipos de script por meio de contratos
explícitos:

    - data source → produz um `DataSource` (accessors train/test/validation
      + metadata tipada)
    - dataflow    → transforma um `DataSource` em outro
    - model       → consome o `DataSource` final através do `Runtime`

Arquitetura em alto nível:
    - core.types    → `Sample` e a união `DataSourceMeta`
    - core.accessor → cursor assíncrono (`next`, `next_batch`, `seek`)
    - core.context  → workspace, bridge de módulos, event log
    - core.runtime  → fachada entregue ao script de modelo
    - core.config   → carregamento, merge e hashing de arquivos de pipeline
    - core.pipeline → descrição do pipeline, registry de scripts e runner
    - datakit       → blocos de construção entregues aos scripts

Limites explícitos:
    - Não define linguagem de consulta nem formato de armazenamento
    - Não agenda múltiplos pipelines
"""

from .core.pipeline import PipelineMeta, PipelineRunner, load_pipeline_meta, run_pipeline
from .core.runtime import ProgressInfo, TaskType

__all__ = [
    "PipelineMeta",
    "PipelineRunner",
    "load_pipeline_meta",
    "run_pipeline",
    "ProgressInfo",
    "TaskType",
]
