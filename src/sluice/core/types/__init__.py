"""
Tipos de dados do Sluice.

Este pacote define o vocabulário compartilhado entre scripts de data
source, dataflows e modelos:

- **sample**
  - `Sample`: label inteiro + payload opaco

- **meta**
  - `DataSourceMeta`: união tipada (`TableDataSourceMeta` | `ImageDataSourceMeta`)
  - `TableSchema`, `TableColumn`, `TableColumnType`
  - `DataSourceSize`, `ImageDimension`
  - `visit_meta`: consumo exaustivo da união

Nenhum tipo aqui executa I/O ou conhece o armazenamento físico dos dados.
"""

from .sample import Sample, validate_label
from .meta import (
    DataSourceMeta,
    DataSourceSize,
    DataSourceType,
    ImageDataSourceMeta,
    ImageDimension,
    TableColumn,
    TableColumnType,
    TableDataSourceMeta,
    TableSchema,
    covers_labels,
    infer_table_schema,
    meta_from_dict,
    meta_to_dict,
    replace_size,
    visit_meta,
)

__all__ = [
    "Sample",
    "validate_label",
    "DataSourceMeta",
    "DataSourceSize",
    "DataSourceType",
    "ImageDataSourceMeta",
    "ImageDimension",
    "TableColumn",
    "TableColumnType",
    "TableDataSourceMeta",
    "TableSchema",
    "covers_labels",
    "infer_table_schema",
    "meta_from_dict",
    "meta_to_dict",
    "replace_size",
    "visit_meta",
]
