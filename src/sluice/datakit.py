"""
datakit: namespace de dados entregue a todo script via `context.datakit`.

Reúne os blocos de construção que um script de data source ou dataflow
precisa sem importar o core diretamente:

    - tipos: `Sample`, metadata e schema
    - accessors: `BaseDataAccessor`, `ArrayDataAccessor`, decoradores
    - data sources: `DataSource`, `make_data_source`, stages transparentes
    - helpers numpy/pandas: conversão entre amostras, frames e matrizes

Os helpers convertem rótulos numpy para `int` nativo: `Sample` só aceita
índices inteiros Python.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from sluice.core.accessor import (
    ArrayDataAccessor,
    BaseDataAccessor,
    DataAccessor,
    MappedDataAccessor,
    PermutedDataAccessor,
    iter_samples,
    read_all,
)
from sluice.core.dataflow import apply_dataflows, map_data_source, permute_data_source
from sluice.core.datasource import (
    DataSource,
    DataSourceApi,
    ensure_data_source,
    make_data_source,
    verify_data_source,
)
from sluice.core.exceptions import IncompatibleDataSource
from sluice.core.types import (
    DataSourceMeta,
    DataSourceSize,
    DataSourceType,
    ImageDataSourceMeta,
    ImageDimension,
    Sample,
    TableColumn,
    TableColumnType,
    TableDataSourceMeta,
    TableSchema,
    infer_table_schema,
    replace_size,
    visit_meta,
)


def samples_from_arrays(data: Sequence[Any], labels: Sequence[Any]) -> List[Sample]:
    """Emparelha `data[i]` com `labels[i]` (labels numpy viram `int`)."""
    if len(data) != len(labels):
        raise ValueError(f"data and labels differ in length: {len(data)} != {len(labels)}")
    return [Sample(label=int(y), data=x) for x, y in zip(data, labels)]


def samples_from_frame(
    df: pd.DataFrame,
    *,
    label_column: str,
    label_index: Dict[Any, int],
    feature_columns: Optional[Sequence[str]] = None,
) -> List[Sample]:
    """Converte linhas de um DataFrame em amostras `Sample(label, row_dict)`.

    `label_index` mapeia o valor bruto da coluna de label para o índice.
    Valores NaN viram `None` no dict da linha.
    """
    if label_column not in df.columns:
        raise KeyError(f"label column not found: {label_column}")
    cols = list(feature_columns) if feature_columns is not None else [c for c in df.columns if c != label_column]
    features = df[cols].astype(object).where(df[cols].notna(), None)
    out: List[Sample] = []
    for row, raw_label in zip(features.to_dict(orient="records"), df[label_column].tolist()):
        if raw_label not in label_index:
            raise KeyError(f"label value not in label index: {raw_label!r}")
        out.append(Sample(label=label_index[raw_label], data=row))
    return out


def stack_samples(samples: Sequence[Sample], *, dtype: Any = None) -> Tuple[np.ndarray, np.ndarray]:
    """Empilha amostras em `(X, y)`; `data` precisa ser array-like de forma fixa."""
    if not samples:
        return np.empty((0,), dtype=dtype), np.empty((0,), dtype=np.int64)
    X = np.stack([np.asarray(s.data, dtype=dtype) for s in samples])
    y = np.asarray([s.label for s in samples], dtype=np.int64)
    return X, y


async def load_arrays(accessor: DataAccessor, *, batch_size: int = 256, dtype: Any = None) -> Tuple[np.ndarray, np.ndarray]:
    """Lê o split inteiro (a partir do início) como `(X, y)`."""
    return stack_samples(await read_all(accessor, batch_size=batch_size), dtype=dtype)


__all__ = [
    "ArrayDataAccessor",
    "BaseDataAccessor",
    "DataAccessor",
    "MappedDataAccessor",
    "PermutedDataAccessor",
    "iter_samples",
    "read_all",
    "apply_dataflows",
    "map_data_source",
    "permute_data_source",
    "DataSource",
    "DataSourceApi",
    "ensure_data_source",
    "make_data_source",
    "verify_data_source",
    "IncompatibleDataSource",
    "DataSourceMeta",
    "DataSourceSize",
    "DataSourceType",
    "ImageDataSourceMeta",
    "ImageDimension",
    "Sample",
    "TableColumn",
    "TableColumnType",
    "TableDataSourceMeta",
    "TableSchema",
    "infer_table_schema",
    "replace_size",
    "visit_meta",
    "samples_from_arrays",
    "samples_from_frame",
    "stack_samples",
    "load_arrays",
]
