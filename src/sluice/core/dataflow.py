"""
Dataflow: transformações puras entre data sources e contratos de entry.

Um dataflow recebe um data source e produz outro, possivelmente com outro
tipo de amostra. A saída pode:
    - decorar os accessors da entrada (composição transparente), ou
    - materializar um data source novo

Em ambos os casos a saída satisfaz sozinha o contrato de accessor: stages
seguintes não precisam saber qual estratégia foi usada.

Contratos de entry (fronteira do pipeline):
    - DataSourceEntry: (options, context) -> DataSource
    - DataflowEntry:   (source, options, context) -> DataSource
    - ModelEntry:      (runtime, options, context) -> None

Decisões arquiteturais:
    - `options` é um mapa livre; as chaves reconhecidas pertencem a cada stage
    - A cadeia preserva a ordem declarada; o core não assume que
      transformações comutam
    - Cada saída é verificada por `verify_data_source`
    - Decoradores recebem o tamanho do split da metadata da entrada: o
      protocolo de accessor não exige `size`

Limites explícitos:
    - Não define transformações concretas (ver `sluice.dataflows`)
    - Não agenda nem paraleliza stages
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence, Tuple

from sluice.core.accessor import MappedDataAccessor, PermutedDataAccessor, SampleFn
from sluice.core.datasource import DataSource, DataSourceApi, verify_data_source
from sluice.core.types.meta import DataSourceMeta

if TYPE_CHECKING:
    from sluice.core.context.context import ExecutionContext
    from sluice.core.runtime.runtime import Runtime


Options = Dict[str, Any]

DataSourceEntry = Callable[[Options, "ExecutionContext"], Awaitable[DataSourceApi]]
DataflowEntry = Callable[[DataSourceApi, Options, "ExecutionContext"], Awaitable[DataSourceApi]]
ModelEntry = Callable[["Runtime", Options, "ExecutionContext"], Awaitable[None]]


async def map_data_source(
    source: DataSourceApi,
    fn: SampleFn,
    *,
    meta: Optional[DataSourceMeta] = None,
) -> DataSource:
    """Stage transparente: aplica `fn` a cada amostra de todos os splits.

    Os accessors da entrada passam a pertencer ao data source retornado.

    Args:
        source: data source de entrada.
        fn: transformação por amostra (síncrona ou assíncrona).
        meta: metadata da saída; default é a metadata da entrada.
    """
    in_meta = await source.get_data_source_meta()
    out_meta = meta if meta is not None else in_meta

    def _wrap(name: str, accessor: Any) -> Any:
        if accessor is None:
            return None
        return MappedDataAccessor(accessor, fn, split=name, size=in_meta.size.of(name))

    return DataSource(
        meta=out_meta,
        train=_wrap("train", source.train),
        test=_wrap("test", source.test),
        validation=_wrap("validation", getattr(source, "validation", None)),
    )


async def permute_data_source(
    source: DataSourceApi,
    orders: Mapping[str, Sequence[int]],
) -> DataSource:
    """Stage transparente: reordena os splits listados em `orders`.

    Splits ausentes de `orders` são repassados sem alteração.
    """
    meta = await source.get_data_source_meta()

    def _wrap(name: str, accessor: Any) -> Any:
        if accessor is None or name not in orders:
            return accessor
        return PermutedDataAccessor(accessor, orders[name], split=name, size=meta.size.of(name))

    return DataSource(
        meta=meta,
        train=_wrap("train", source.train),
        test=_wrap("test", source.test),
        validation=_wrap("validation", getattr(source, "validation", None)),
    )


async def apply_dataflows(
    source: DataSourceApi,
    stages: Sequence[Tuple[DataflowEntry, Options]],
    context: "ExecutionContext",
) -> DataSourceApi:
    """Encadeia dataflows na ordem declarada, validando cada saída."""
    current = await verify_data_source(source)
    for index, (entry, options) in enumerate(stages):
        current = await verify_data_source(
            await entry(current, dict(options or {}), context),
            stage_id=f"dataflow[{index}]",
        )
    return current
