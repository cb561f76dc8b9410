"""
Tipos canônicos de metadata de data sources do Sluice.

Este módulo define a descrição tipada da forma de um data source:
    - tipo do data source (tabela ou imagem)
    - schema de colunas (tabelas) ou dimensão fixa (imagens)
    - tamanho exato de cada split
    - vocabulário de labels (índice → nome legível)

Componentes principais:
    - DataSourceType, TableColumnType → enums textuais estáveis
    - TableColumn, TableSchema        → schema ordenado de colunas
    - DataSourceSize, ImageDimension  → tamanhos e forma
    - TableDataSourceMeta, ImageDataSourceMeta → variantes da união `DataSourceMeta`

Decisões arquiteturais:
    - `DataSourceMeta` é um tipo soma explícito: cada variante carrega apenas
      os seus campos, e `type` é fixo por variante (não é argumento de init)
    - Todo consumo deve passar por `visit_meta`, que falha para qualquer
      objeto fora das duas variantes
    - Os valores textuais dos enums são usados diretamente em serialização

Invariantes:
    - `type == TABLE` se e somente se existe `table_schema` e não existe `dimension`
    - `validation` em DataSourceSize está presente sse existe split de validação
    - Nomes de coluna são únicos dentro de um schema; a ordem é significativa
    - Chaves do label map são inteiros não negativos

Limites explícitos:
    - Não define formato de armazenamento
    - Não mapeia labels para saídas de modelo além do índice numérico
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union


R = TypeVar("R")


class DataSourceType(str, Enum):
    TABLE = "table"
    IMAGE = "image"


class TableColumnType(str, Enum):
    NUMBER = "number"
    STRING = "string"
    BOOL = "bool"
    MAP = "map"
    DATETIME = "datetime"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TableColumn:
    name: str
    type: TableColumnType = TableColumnType.UNKNOWN

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("TableColumn.name must be a non-empty string")
        # aceita o valor textual para facilitar construção a partir de config
        object.__setattr__(self, "type", TableColumnType(self.type))


@dataclass(frozen=True)
class TableSchema:
    """Sequência ordenada de colunas; a posição define a correspondência com a linha."""

    columns: Tuple[TableColumn, ...] = ()

    def __post_init__(self) -> None:
        cols = tuple(self.columns)
        seen = set()
        for col in cols:
            if not isinstance(col, TableColumn):
                raise TypeError(f"TableSchema expects TableColumn, got {type(col).__name__}")
            if col.name in seen:
                raise ValueError(f"Duplicate column name in schema: {col.name}")
            seen.add(col.name)
        object.__setattr__(self, "columns", cols)

    def __iter__(self):
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> TableColumn:
        for c in self.columns:
            if c.name == name:
                return c
        raise KeyError(name)

    def select(self, names: Sequence[str]) -> "TableSchema":
        return TableSchema(tuple(self.column(n) for n in names))


def _require_count(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"DataSourceSize.{name} must be a non-negative int, got {value!r}")
    return value


@dataclass(frozen=True)
class DataSourceSize:
    """Número exato de amostras recuperáveis de cada split."""

    train: int
    test: int
    validation: Optional[int] = None

    def __post_init__(self) -> None:
        _require_count("train", self.train)
        _require_count("test", self.test)
        if self.validation is not None:
            _require_count("validation", self.validation)

    @property
    def has_validation(self) -> bool:
        return self.validation is not None

    def of(self, split: str) -> Optional[int]:
        if split not in ("train", "test", "validation"):
            raise KeyError(split)
        return getattr(self, split)


@dataclass(frozen=True)
class ImageDimension:
    """Forma espacial fixa das imagens do data source (z = canais)."""

    x: int
    y: int
    z: int = 1

    def __post_init__(self) -> None:
        for axis in ("x", "y", "z"):
            v = getattr(self, axis)
            if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
                raise ValueError(f"ImageDimension.{axis} must be a positive int, got {v!r}")

    @property
    def shape(self) -> Tuple[int, int, int]:
        # ordem (linhas, colunas, canais), a mesma dos arrays numpy
        return (self.y, self.x, self.z)


def _normalize_label_map(label_map: Any) -> Dict[int, str]:
    if not isinstance(label_map, dict):
        raise TypeError("label_map must be a dict of int -> str")
    out: Dict[int, str] = {}
    for k, v in label_map.items():
        # chaves JSON chegam como string ("0"); o índice continua sendo inteiro
        if isinstance(k, str) and k.isdigit():
            k = int(k)
        if isinstance(k, bool) or not isinstance(k, int) or k < 0:
            raise ValueError(f"label_map keys must be non-negative ints, got {k!r}")
        out[k] = str(v)
    return out


@dataclass(frozen=True)
class TableDataSourceMeta:
    size: DataSourceSize
    table_schema: TableSchema
    data_keys: Optional[Tuple[str, ...]] = None
    label_map: Dict[int, str] = field(default_factory=dict)
    type: DataSourceType = field(default=DataSourceType.TABLE, init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.table_schema, TableSchema):
            object.__setattr__(self, "table_schema", TableSchema(tuple(self.table_schema)))
        if self.data_keys is not None:
            object.__setattr__(self, "data_keys", tuple(self.data_keys))
        object.__setattr__(self, "label_map", _normalize_label_map(self.label_map))


@dataclass(frozen=True)
class ImageDataSourceMeta:
    size: DataSourceSize
    dimension: ImageDimension
    label_map: Dict[int, str] = field(default_factory=dict)
    type: DataSourceType = field(default=DataSourceType.IMAGE, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "label_map", _normalize_label_map(self.label_map))


DataSourceMeta = Union[TableDataSourceMeta, ImageDataSourceMeta]


def visit_meta(
    meta: DataSourceMeta,
    *,
    on_table: Callable[[TableDataSourceMeta], R],
    on_image: Callable[[ImageDataSourceMeta], R],
) -> R:
    """Despacho exaustivo sobre as variantes de DataSourceMeta.

    Todo ponto que consome metadata deve usar este helper, de forma que uma
    nova variante falhe explicitamente em vez de cair em um ramo genérico.

    Raises:
        TypeError: Se `meta` não for uma das variantes conhecidas.
    """
    if isinstance(meta, TableDataSourceMeta):
        return on_table(meta)
    if isinstance(meta, ImageDataSourceMeta):
        return on_image(meta)
    raise TypeError(f"Unknown DataSourceMeta variant: {type(meta).__name__}")


def covers_labels(meta: DataSourceMeta, labels: Iterable[int]) -> bool:
    """True se todo label emitido possui entrada no label map."""
    known = meta.label_map
    return all(label in known for label in labels)


def replace_size(meta: DataSourceMeta, size: DataSourceSize) -> DataSourceMeta:
    return visit_meta(
        meta,
        on_table=lambda m: TableDataSourceMeta(
            size=size, table_schema=m.table_schema, data_keys=m.data_keys, label_map=m.label_map
        ),
        on_image=lambda m: ImageDataSourceMeta(size=size, dimension=m.dimension, label_map=m.label_map),
    )


# ---------------------------------------------------------------------------
# Serialização (round-trip JSON)
# ---------------------------------------------------------------------------

def _size_to_dict(size: DataSourceSize) -> Dict[str, Any]:
    out: Dict[str, Any] = {"train": size.train, "test": size.test}
    if size.validation is not None:
        out["validation"] = size.validation
    return out


def meta_to_dict(meta: DataSourceMeta) -> Dict[str, Any]:
    def _table(m: TableDataSourceMeta) -> Dict[str, Any]:
        return {
            "type": m.type.value,
            "size": _size_to_dict(m.size),
            "table_schema": [{"name": c.name, "type": c.type.value} for c in m.table_schema],
            "data_keys": list(m.data_keys) if m.data_keys is not None else None,
            "label_map": {str(k): v for k, v in sorted(m.label_map.items())},
        }

    def _image(m: ImageDataSourceMeta) -> Dict[str, Any]:
        return {
            "type": m.type.value,
            "size": _size_to_dict(m.size),
            "dimension": {"x": m.dimension.x, "y": m.dimension.y, "z": m.dimension.z},
            "label_map": {str(k): v for k, v in sorted(m.label_map.items())},
        }

    return visit_meta(meta, on_table=_table, on_image=_image)


def meta_from_dict(data: Dict[str, Any]) -> DataSourceMeta:
    if not isinstance(data, dict):
        raise TypeError("meta_from_dict expects a dict")
    kind = DataSourceType(data.get("type"))
    size = DataSourceSize(**(data.get("size") or {}))
    label_map = data.get("label_map") or {}

    if kind is DataSourceType.TABLE:
        if "dimension" in data:
            raise ValueError("Table metadata must not carry an image dimension")
        schema = TableSchema(tuple(TableColumn(**c) for c in data.get("table_schema") or []))
        keys = data.get("data_keys")
        return TableDataSourceMeta(size=size, table_schema=schema, data_keys=keys, label_map=label_map)

    if "table_schema" in data:
        raise ValueError("Image metadata must not carry a table schema")
    dim = ImageDimension(**(data.get("dimension") or {}))
    return ImageDataSourceMeta(size=size, dimension=dim, label_map=label_map)


# ---------------------------------------------------------------------------
# Inferência de schema a partir de DataFrames
# ---------------------------------------------------------------------------

def _object_column_type(values: Iterable[Any]) -> TableColumnType:
    non_null = [v for v in values if v is not None]
    if not non_null:
        return TableColumnType.UNKNOWN
    if all(isinstance(v, dict) for v in non_null):
        return TableColumnType.MAP
    if all(isinstance(v, str) for v in non_null):
        return TableColumnType.STRING
    if all(isinstance(v, bool) for v in non_null):
        return TableColumnType.BOOL
    return TableColumnType.UNKNOWN


def infer_table_schema(df: Any, columns: Optional[Sequence[str]] = None) -> TableSchema:
    """Deriva um TableSchema dos dtypes de um `pandas.DataFrame`.

    Política (v1):
        - bool               → BOOL
        - numérico           → NUMBER
        - datetime64         → DATETIME
        - object com dicts   → MAP
        - object com strings → STRING
        - demais             → UNKNOWN

    Args:
        df: DataFrame de origem.
        columns: subconjunto ordenado de colunas (default: todas, na ordem do df).
    """
    from pandas.api import types as ptypes

    names = list(columns) if columns is not None else [str(c) for c in df.columns]
    out: List[TableColumn] = []
    for name in names:
        series = df[name]
        if ptypes.is_bool_dtype(series):
            t = TableColumnType.BOOL
        elif ptypes.is_numeric_dtype(series):
            t = TableColumnType.NUMBER
        elif ptypes.is_datetime64_any_dtype(series):
            t = TableColumnType.DATETIME
        elif ptypes.is_object_dtype(series) or ptypes.is_string_dtype(series):
            t = _object_column_type(series.dropna().tolist())
        else:
            t = TableColumnType.UNKNOWN
        out.append(TableColumn(name=name, type=t))
    return TableSchema(tuple(out))
