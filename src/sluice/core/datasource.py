"""
Data Source — pacote endereçável de accessors + metadata.

Um Data Source agrupa:
    - um provedor de metadata (`get_data_source_meta`)
    - accessors `train` e `test`
    - accessor `validation` opcional

Responsabilidades do módulo:
    - Definir o protocolo `DataSourceApi` consumido por dataflows e runtime
    - Fornecer a implementação canônica `DataSource`, que valida o contrato
      na construção (tamanhos e presença do split de validação)
    - Fornecer `ensure_data_source` (checagem estrutural, síncrona) e
      `verify_data_source`, aplicada em toda fronteira de stage: além do
      contrato estrutural, confronta os splits com a metadata resolvida

Invariantes:
    - `validation` existe sse `meta.size.validation` existe
    - Quando o accessor expõe `size`, ele é igual ao tamanho declarado
    - `get_data_source_meta()` é idempotente e sem efeitos colaterais
    - O tamanho de cada split é conhecido ao fim da construção

Limites explícitos:
    - Não lê dados (isso é responsabilidade dos accessors)
    - Não define formato de armazenamento
"""

from __future__ import annotations

from typing import Any, Generic, List, Optional, Protocol, Sequence, Tuple, TypeVar, runtime_checkable

from sluice.core.accessor import ArrayDataAccessor, DataAccessor
from sluice.core.exceptions import DataSourceContractError
from sluice.core.types.meta import (
    DataSourceMeta,
    DataSourceSize,
    ImageDataSourceMeta,
    ImageDimension,
    TableDataSourceMeta,
    TableSchema,
    covers_labels,
    visit_meta,
)
from sluice.core.types.sample import Sample


T = TypeVar("T")

SPLITS = ("train", "test", "validation")


@runtime_checkable
class DataSourceApi(Protocol[T]):
    """Contrato mínimo de um data source, verificado por duck typing."""

    train: DataAccessor[T]
    test: DataAccessor[T]
    validation: Optional[DataAccessor[T]]

    async def get_data_source_meta(self) -> DataSourceMeta:
        ...


def _check_split(name: str, accessor: Any, declared: Optional[int]) -> None:
    if accessor is None:
        if declared is not None:
            raise DataSourceContractError(
                message=f"Split '{name}' is declared in metadata but has no accessor",
                details={"split": name, "declared_size": declared},
            )
        return

    if declared is None:
        raise DataSourceContractError(
            message=f"Split '{name}' has an accessor but is not declared in metadata",
            details={"split": name},
            hint="Declare size.validation na metadata ou não forneça o accessor de validação.",
        )
    if not isinstance(accessor, DataAccessor):
        raise DataSourceContractError(
            message=f"Split '{name}' does not satisfy the DataAccessor contract",
            details={"split": name, "received": type(accessor).__name__},
        )
    size = getattr(accessor, "size", None)
    if isinstance(size, int) and size != declared:
        raise DataSourceContractError(
            message=f"Split '{name}' size does not match metadata",
            details={"split": name, "declared_size": declared, "accessor_size": size},
        )


class DataSource(Generic[T]):
    """
    Implementação canônica de `DataSourceApi`.

    A metadata é resolvida antes da construção (o chamador já conhece o
    tamanho de cada split), portanto `get_data_source_meta()` apenas devolve
    o mesmo objeto a cada chamada.

    O data source é dono dos accessors recebidos: `close()` os encerra.
    """

    def __init__(
        self,
        *,
        meta: DataSourceMeta,
        train: DataAccessor[T],
        test: DataAccessor[T],
        validation: Optional[DataAccessor[T]] = None,
    ):
        # valida a variante (falha para objetos fora da união)
        size = visit_meta(meta, on_table=lambda m: m.size, on_image=lambda m: m.size)
        _check_split("train", train, size.train)
        _check_split("test", test, size.test)
        _check_split("validation", validation, size.validation)

        self._meta = meta
        self.train = train
        self.test = test
        self.validation = validation

    async def get_data_source_meta(self) -> DataSourceMeta:
        return self._meta

    def splits(self) -> List[Tuple[str, DataAccessor[T]]]:
        out = [("train", self.train), ("test", self.test)]
        if self.validation is not None:
            out.append(("validation", self.validation))
        return out

    async def close(self) -> None:
        for _, accessor in self.splits():
            close = getattr(accessor, "close", None)
            if close is not None:
                await close()

    def __repr__(self) -> str:
        return f"DataSource(type={self._meta.type.value}, size={self._meta.size})"


def ensure_data_source(obj: Any, *, stage_id: Optional[str] = None) -> DataSourceApi:
    """Valida que `obj` satisfaz o contrato de data source na fronteira de um stage.

    Raises:
        DataSourceContractError: Se o objeto não expõe train/test/metadata.
    """
    missing = [
        attr
        for attr in ("train", "test", "get_data_source_meta")
        if getattr(obj, attr, None) is None
    ]
    if missing:
        raise DataSourceContractError(
            message="Stage output is not a data source",
            details={"stage": stage_id, "missing": missing, "received": type(obj).__name__},
            hint="O entry do script deve retornar um DataSource.",
        )
    for name in SPLITS:
        accessor = getattr(obj, name, None)
        if accessor is not None and not isinstance(accessor, DataAccessor):
            raise DataSourceContractError(
                message=f"Split '{name}' does not satisfy the DataAccessor contract",
                details={"stage": stage_id, "split": name, "received": type(accessor).__name__},
            )
    return obj


async def verify_data_source(obj: Any, *, stage_id: Optional[str] = None) -> DataSourceApi:
    """`ensure_data_source` + coerência dos splits com a metadata declarada.

    Cobre data sources que não são instâncias de `DataSource` (e portanto
    não validaram o contrato na construção): `validation` existe sse
    `size.validation` existe e accessors com `size` batem com o declarado.

    Raises:
        DataSourceContractError: Saída malformada ou splits incoerentes.
    """
    source = ensure_data_source(obj, stage_id=stage_id)
    meta = await source.get_data_source_meta()
    try:
        size = visit_meta(meta, on_table=lambda m: m.size, on_image=lambda m: m.size)
    except TypeError as e:
        raise DataSourceContractError(
            message="get_data_source_meta() did not return a known metadata variant",
            details={"stage": stage_id, "received": type(meta).__name__},
        ) from e
    for name in SPLITS:
        try:
            _check_split(name, getattr(source, name, None), size.of(name))
        except DataSourceContractError as e:
            if stage_id is not None:
                e.details.setdefault("stage", stage_id)
            raise
    return source


def make_data_source(
    *,
    train: Sequence[Sample[T]],
    test: Sequence[Sample[T]],
    validation: Optional[Sequence[Sample[T]]] = None,
    label_map: Optional[dict] = None,
    table_schema: Optional[TableSchema] = None,
    data_keys: Optional[Sequence[str]] = None,
    dimension: Optional[ImageDimension] = None,
) -> DataSource[T]:
    """Constrói um DataSource em memória a partir de listas de amostras.

    Exatamente um de `table_schema` / `dimension` deve ser informado; o
    tamanho de cada split é derivado das listas. Sem `label_map`, os nomes
    são os próprios índices observados.

    Raises:
        DataSourceContractError: `label_map` explícito não cobre todo label das amostras.
    """
    if (table_schema is None) == (dimension is None):
        raise ValueError("Provide exactly one of table_schema or dimension")

    size = DataSourceSize(
        train=len(train),
        test=len(test),
        validation=len(validation) if validation is not None else None,
    )
    seen = {s.label for part in (train, test, validation or []) for s in part}
    if label_map is None:
        label_map = {i: str(i) for i in sorted(seen)}

    meta: DataSourceMeta
    if table_schema is not None:
        meta = TableDataSourceMeta(
            size=size, table_schema=table_schema, data_keys=data_keys, label_map=label_map
        )
    else:
        meta = ImageDataSourceMeta(size=size, dimension=dimension, label_map=label_map)

    if not covers_labels(meta, seen):
        raise DataSourceContractError(
            message="Samples carry labels outside the label map",
            details={"uncovered": sorted(seen - set(meta.label_map)), "label_map": sorted(meta.label_map)},
            hint="Inclua todo label emitido em label_map ou omita label_map para derivá-lo das amostras.",
        )

    return DataSource(
        meta=meta,
        train=ArrayDataAccessor(train, split="train"),
        test=ArrayDataAccessor(test, split="test"),
        validation=ArrayDataAccessor(validation, split="validation") if validation is not None else None,
    )
