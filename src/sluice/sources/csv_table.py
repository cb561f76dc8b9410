"""
Data source builtin: `csv_table` (v1).

Lê uma tabela CSV com pandas e expõe cada linha como
`Sample(label=<índice>, data=<dict coluna -> valor>)`.

Opções:
    path: arquivo único, dividido com `train_test_split`
    train_path / test_path / validation_path: arquivos já divididos
    label: coluna de label (obrigatória)
    features: colunas de feature (default: todas exceto o label)
    labels: vocabulário explícito, na ordem dos índices
    test_size: fração de teste (default 0.2)
    validation_size: fração de validação (opcional)
    seed: obrigatória quando há split (determinismo)
    stratify: estratifica pelo label (default false)
    sep: separador (default ",")

Decisões:
    - Caminhos relativos são resolvidos contra `workspace.data_dir`
    - Sem `labels`, o vocabulário é a lista ordenada dos valores observados
    - `data_keys` da metadata são as colunas de feature
    - Linhas são convertidas sob demanda (o DataFrame fica em memória)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from sklearn.model_selection import train_test_split

from sluice.core.accessor import BaseDataAccessor
from sluice.core.context.context import ExecutionContext
from sluice.core.datasource import DataSource
from sluice.core.exceptions import DataSourceContractError
from sluice.core.types.meta import DataSourceSize, TableDataSourceMeta, infer_table_schema
from sluice.core.types.sample import Sample
from sluice.datakit import samples_from_frame


STAGE_ID = "datasource"


class FrameDataAccessor(BaseDataAccessor[Dict[str, Any]]):
    """Accessor sobre as linhas de um DataFrame (conversão lazy por lote)."""

    def __init__(
        self,
        df: pd.DataFrame,
        *,
        label_column: str,
        label_index: Dict[Any, int],
        feature_columns: Sequence[str],
        split: str,
    ):
        self._df = df.reset_index(drop=True)
        self._label_column = label_column
        self._label_index = label_index
        self._features = list(feature_columns)
        super().__init__(size=len(self._df), split=split)

    async def _read(self, pos: int, count: int) -> List[Sample[Dict[str, Any]]]:
        return samples_from_frame(
            self._df.iloc[pos:pos + count],
            label_column=self._label_column,
            label_index=self._label_index,
            feature_columns=self._features,
        )


def _resolve(path: Any, context: ExecutionContext) -> Path:
    if not isinstance(path, (str, Path)) or not str(path).strip():
        raise ValueError(f"Invalid config: path must be a non-empty string, got {path!r}")
    p = Path(path)
    return p if p.is_absolute() else context.workspace.data_dir / p


def _validate_fraction(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 < float(value) < 1.0:
        raise ValueError(f"Invalid config: {name} must be between 0 and 1 (exclusive)")
    return float(value)


def _validate_seed(seed: Any) -> int:
    if seed is None:
        raise ValueError("Invalid config: seed is required for determinism")
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise ValueError("Invalid config: seed must be an int")
    return seed


def _split_frame(df: pd.DataFrame, options: Dict[str, Any], label: str) -> Tuple[pd.DataFrame, pd.DataFrame, Optional[pd.DataFrame]]:
    seed = _validate_seed(options.get("seed"))
    test_size = _validate_fraction("test_size", options.get("test_size", 0.2))
    validation_size = options.get("validation_size")
    stratify = bool(options.get("stratify", False))

    train_df, test_df = train_test_split(
        df,
        test_size=test_size,
        random_state=seed,
        shuffle=True,
        stratify=df[label] if stratify else None,
    )
    val_df = None
    if validation_size is not None:
        val_frac = _validate_fraction("validation_size", validation_size)
        if val_frac + test_size >= 1.0:
            raise ValueError("Invalid config: test_size + validation_size must be < 1")
        train_df, val_df = train_test_split(
            train_df,
            test_size=val_frac / (1.0 - test_size),
            random_state=seed,
            shuffle=True,
            stratify=train_df[label] if stratify else None,
        )
    return train_df, test_df, val_df


async def _read_csv(path: Path, sep: str) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"CSV not found: {path}")
    return await asyncio.to_thread(pd.read_csv, path, sep=sep)


async def main(options: Dict[str, Any], context: ExecutionContext) -> DataSource:
    label = options.get("label")
    if not isinstance(label, str) or not label.strip():
        raise ValueError("Invalid config: label column is required")
    sep = options.get("sep", ",")

    if options.get("path") is not None:
        if options.get("train_path") is not None:
            raise ValueError("Invalid config: use either path or train_path/test_path")
        df = await _read_csv(_resolve(options["path"], context), sep)
        if label not in df.columns:
            raise DataSourceContractError(message=f"Label column not found: {label}", details={"columns": list(df.columns)})
        train_df, test_df, val_df = _split_frame(df, options, label)
    else:
        if options.get("train_path") is None or options.get("test_path") is None:
            raise ValueError("Invalid config: path or train_path + test_path is required")
        train_df = await _read_csv(_resolve(options["train_path"], context), sep)
        test_df = await _read_csv(_resolve(options["test_path"], context), sep)
        val_df = None
        if options.get("validation_path") is not None:
            val_df = await _read_csv(_resolve(options["validation_path"], context), sep)

    frames = [("train", train_df), ("test", test_df)]
    if val_df is not None:
        frames.append(("validation", val_df))

    columns = list(train_df.columns)
    for name, frame in frames:
        if list(frame.columns) != columns:
            raise DataSourceContractError(
                message="Split files must share the same columns",
                details={"split": name, "expected": columns, "received": list(frame.columns)},
            )
        if label not in frame.columns:
            raise DataSourceContractError(message=f"Label column not found: {label}", details={"split": name})

    features = options.get("features")
    if features is None:
        features = [c for c in columns if c != label]
    missing = [c for c in features if c not in columns]
    if missing or label in features:
        raise DataSourceContractError(
            message="Invalid feature columns",
            details={"missing": missing, "label": label},
            hint="features deve listar colunas existentes, sem a coluna de label.",
        )

    vocabulary = options.get("labels")
    if vocabulary is None:
        observed = pd.concat([f[label] for _, f in frames]).dropna().unique().tolist()
        vocabulary = sorted(observed, key=lambda v: (str(type(v)), v))
    label_index = {value: i for i, value in enumerate(vocabulary)}
    for name, frame in frames:
        unknown = [v for v in frame[label].unique().tolist() if v not in label_index]
        if unknown:
            raise DataSourceContractError(
                message="Label values outside the declared vocabulary",
                details={"split": name, "unknown": [str(v) for v in unknown]},
            )

    meta = TableDataSourceMeta(
        size=DataSourceSize(
            train=len(train_df),
            test=len(test_df),
            validation=len(val_df) if val_df is not None else None,
        ),
        table_schema=infer_table_schema(train_df, columns=features),
        data_keys=features,
        label_map={i: str(v) for v, i in label_index.items()},
    )

    accessors = {
        name: FrameDataAccessor(frame, label_column=label, label_index=label_index, feature_columns=features, split=name)
        for name, frame in frames
    }
    context.log(stage_id=STAGE_ID, level="info", message="csv table loaded", rows=sum(len(f) for _, f in frames), labels=len(label_index))
    return DataSource(meta=meta, **accessors)
