"""
Data source builtin: `npy_image` (v1).

Layout esperado em `dir` (relativo a `workspace.data_dir`):

    train_images.npy        (N, H, W) ou (N, H, W, C)
    train_labels.npy        (N,)
    test_images.npy / test_labels.npy
    validation_images.npy / validation_labels.npy   (opcional)
    labels.txt              (opcional, um nome por linha)

Opções:
    dir: diretório dos arquivos (obrigatório)
    label_names: nomes dos labels na ordem dos índices (sobrepõe labels.txt)
    mmap: abre as imagens com `mmap_mode="r"` (default true)

Invariantes:
    - Todos os splits têm a mesma dimensão (H, W, C)
    - Todo label emitido possui entrada no label map
    - `data` de cada amostra é um array numpy de forma (H, W, C)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from sluice.core.accessor import BaseDataAccessor
from sluice.core.context.context import ExecutionContext
from sluice.core.datasource import DataSource
from sluice.core.exceptions import DataSourceContractError, SampleMaterializationError
from sluice.core.types.meta import DataSourceSize, ImageDataSourceMeta, ImageDimension
from sluice.core.types.sample import Sample


LABELS_FILENAME = "labels.txt"


class NpyImageAccessor(BaseDataAccessor[np.ndarray]):
    """
    Accessor sobre os arrays de um split.

    Com `mmap`, as imagens ficam mapeadas do disco; cada amostra recebe uma
    cópia do bloco lido, de modo que nenhuma amostra segura o mapeamento.
    `close()` solta os arrays (o `np.memmap` não tem `close`: o mapeamento
    é liberado quando a última referência cai).
    """

    def __init__(self, images: np.ndarray, labels: np.ndarray, *, split: str):
        self._images: Optional[np.ndarray] = images
        self._labels: Optional[np.ndarray] = labels
        super().__init__(size=int(images.shape[0]), split=split)

    async def _read(self, pos: int, count: int) -> List[Sample[np.ndarray]]:
        if self._images is None or self._labels is None:
            raise SampleMaterializationError(
                message="Accessor is closed",
                details={"split": self.split, "position": pos},
            )
        block = np.array(self._images[pos:pos + count])
        if block.ndim == 3:
            block = block[..., np.newaxis]
        return [
            Sample(label=int(y), data=img)
            for img, y in zip(block, self._labels[pos:pos + count])
        ]

    async def close(self) -> None:
        self._images = None
        self._labels = None


def _load_split(directory: Path, split: str, mmap: bool) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    images_path = directory / f"{split}_images.npy"
    labels_path = directory / f"{split}_labels.npy"
    if not images_path.exists():
        return None
    if not labels_path.exists():
        raise DataSourceContractError(message=f"Missing labels file for split '{split}'", details={"path": str(labels_path)})
    images = np.load(images_path, mmap_mode="r" if mmap else None)
    labels = np.load(labels_path)
    if images.ndim not in (3, 4):
        raise DataSourceContractError(
            message="Images must have shape (N, H, W) or (N, H, W, C)",
            details={"split": split, "shape": list(images.shape)},
        )
    if labels.ndim != 1 or labels.shape[0] != images.shape[0]:
        raise DataSourceContractError(
            message="Labels must be a 1-d array with one entry per image",
            details={"split": split, "images": int(images.shape[0]), "labels_shape": list(labels.shape)},
        )
    if not np.issubdtype(labels.dtype, np.integer) or (labels.size and labels.min() < 0):
        raise DataSourceContractError(message="Labels must be non-negative integers", details={"split": split, "dtype": str(labels.dtype)})
    return images, labels


def _dimension(images: np.ndarray) -> ImageDimension:
    h, w = int(images.shape[1]), int(images.shape[2])
    c = int(images.shape[3]) if images.ndim == 4 else 1
    return ImageDimension(x=w, y=h, z=c)


def _label_names(directory: Path, options: Dict[str, Any]) -> Optional[List[str]]:
    names = options.get("label_names")
    if names is not None:
        return [str(n) for n in names]
    labels_file = directory / LABELS_FILENAME
    if labels_file.exists():
        return [line.strip() for line in labels_file.read_text(encoding="utf-8").splitlines() if line.strip()]
    return None


def _open(directory: Path, options: Dict[str, Any]) -> DataSource:
    mmap = bool(options.get("mmap", True))
    loaded: Dict[str, Tuple[np.ndarray, np.ndarray]] = {}
    for split in ("train", "test", "validation"):
        pair = _load_split(directory, split, mmap)
        if pair is not None:
            loaded[split] = pair
    for required in ("train", "test"):
        if required not in loaded:
            raise DataSourceContractError(
                message=f"Missing required split '{required}'",
                details={"dir": str(directory)},
                hint=f"Forneça {required}_images.npy e {required}_labels.npy.",
            )

    dims = {split: _dimension(images) for split, (images, _) in loaded.items()}
    dimension = dims["train"]
    mismatched = {s: d.shape for s, d in dims.items() if d != dimension}
    if mismatched:
        raise DataSourceContractError(
            message="All splits must share the same image dimension",
            details={"expected": list(dimension.shape), "mismatched": {s: list(v) for s, v in mismatched.items()}},
        )

    observed = sorted({int(v) for _, labels in loaded.values() for v in np.unique(labels)})
    names = _label_names(directory, options)
    if names is None:
        label_map = {i: str(i) for i in observed}
    else:
        label_map = dict(enumerate(names))
        uncovered = [i for i in observed if i not in label_map]
        if uncovered:
            raise DataSourceContractError(
                message="Labels outside the label map",
                details={"uncovered": uncovered, "label_names": len(names)},
            )

    meta = ImageDataSourceMeta(
        size=DataSourceSize(
            train=int(loaded["train"][0].shape[0]),
            test=int(loaded["test"][0].shape[0]),
            validation=int(loaded["validation"][0].shape[0]) if "validation" in loaded else None,
        ),
        dimension=dimension,
        label_map=label_map,
    )
    return DataSource(
        meta=meta,
        **{split: NpyImageAccessor(images, labels, split=split) for split, (images, labels) in loaded.items()},
    )


async def main(options: Dict[str, Any], context: ExecutionContext) -> DataSource:
    raw = options.get("dir")
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("Invalid config: dir is required")
    directory = Path(raw)
    if not directory.is_absolute():
        directory = context.workspace.data_dir / directory
    if not directory.is_dir():
        raise FileNotFoundError(f"Image directory not found: {directory}")

    source = await asyncio.to_thread(_open, directory, options)
    meta = await source.get_data_source_meta()
    context.log(
        stage_id="datasource",
        level="info",
        message="npy images opened",
        dimension=list(meta.dimension.shape),
        labels=len(meta.label_map),
    )
    return source
