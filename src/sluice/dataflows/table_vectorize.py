"""
Dataflow builtin: `table_vectorize` (v1).

Converte cada linha (dict coluna → valor) em um vetor `float32` na ordem
das colunas selecionadas.

Opções:
    columns: colunas a vetorizar (default: `data_keys` da entrada, ou todas
             as colunas NUMBER/BOOL do schema)
    fill_value: valor para células ausentes (default NaN)

Decisões:
    - Apenas colunas NUMBER e BOOL são vetorizáveis; outras levantam
      `IncompatibleDataSource` (codificação categórica não é feita aqui)
    - A metadata de saída restringe o schema e `data_keys` às colunas usadas
"""

from __future__ import annotations

from typing import Any, Dict, List

import numpy as np

from sluice.core.context.context import ExecutionContext
from sluice.core.dataflow import map_data_source
from sluice.core.datasource import DataSource, DataSourceApi
from sluice.core.exceptions import IncompatibleDataSource
from sluice.core.types.meta import TableColumnType, TableDataSourceMeta, visit_meta
from sluice.core.types.sample import Sample


VECTORIZABLE = (TableColumnType.NUMBER, TableColumnType.BOOL)


def _reject_image(meta: Any) -> None:
    raise IncompatibleDataSource(
        message="table_vectorize expects a table data source",
        details={"received": meta.type.value},
    )


def _select_columns(meta: TableDataSourceMeta, options: Dict[str, Any]) -> List[str]:
    columns = options.get("columns")
    if columns is None:
        if meta.data_keys is not None:
            columns = list(meta.data_keys)
        else:
            columns = [c.name for c in meta.table_schema if c.type in VECTORIZABLE]
    columns = list(columns)
    if not columns:
        raise IncompatibleDataSource(message="No vectorizable columns", details={"schema": meta.table_schema.names})

    for name in columns:
        if name not in meta.table_schema.names:
            raise IncompatibleDataSource(message=f"Column not in schema: {name}", details={"schema": meta.table_schema.names})
        col_type = meta.table_schema.column(name).type
        if col_type not in VECTORIZABLE:
            raise IncompatibleDataSource(
                message=f"Column '{name}' is not numeric",
                details={"column": name, "type": col_type.value},
                hint="Remova a coluna de `columns` ou codifique-a num dataflow anterior.",
            )
    return columns


async def main(source: DataSourceApi, options: Dict[str, Any], context: ExecutionContext) -> DataSource:
    meta = await source.get_data_source_meta()
    table_meta: TableDataSourceMeta = visit_meta(meta, on_table=lambda m: m, on_image=_reject_image)

    columns = _select_columns(table_meta, options)
    fill_value = float(options.get("fill_value", np.nan))

    def _vectorize(sample: Sample) -> Sample:
        row = sample.data
        values = [row.get(c) for c in columns]
        vector = np.asarray([fill_value if v is None else float(v) for v in values], dtype=np.float32)
        return Sample(label=sample.label, data=vector)

    out_meta = TableDataSourceMeta(
        size=table_meta.size,
        table_schema=table_meta.table_schema.select(columns),
        data_keys=columns,
        label_map=table_meta.label_map,
    )
    context.log(stage_id=None, level="info", message="table vectorized", columns=columns)
    return await map_data_source(source, _vectorize, meta=out_meta)
