"""
Dataflow builtin: `image_normalize` (v1).

    out = (data.astype(float32) * scale - mean) / std

Opções:
    scale: fator multiplicativo (default 1/255)
    mean: escalar ou lista por canal (default 0)
    std: escalar ou lista por canal (default 1; zeros são rejeitados)

Aceita apenas data sources de imagem; metadata é preservada.
"""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

from sluice.core.context.context import ExecutionContext
from sluice.core.dataflow import map_data_source
from sluice.core.datasource import DataSource, DataSourceApi
from sluice.core.exceptions import IncompatibleDataSource
from sluice.core.types.meta import ImageDataSourceMeta, visit_meta
from sluice.core.types.sample import Sample


def _channel_param(name: str, value: Any, channels: int) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float32)
    if arr.ndim == 0:
        return arr
    if arr.shape != (channels,):
        raise ValueError(f"Invalid config: {name} must be a scalar or a list of {channels} values")
    return arr


def _reject_table(meta: Any) -> None:
    raise IncompatibleDataSource(
        message="image_normalize expects an image data source",
        details={"received": meta.type.value},
    )


async def main(source: DataSourceApi, options: Dict[str, Any], context: ExecutionContext) -> DataSource:
    meta = await source.get_data_source_meta()
    image_meta: ImageDataSourceMeta = visit_meta(meta, on_table=_reject_table, on_image=lambda m: m)

    channels = image_meta.dimension.z
    scale = np.float32(options.get("scale", 1.0 / 255.0))
    mean = _channel_param("mean", options.get("mean", 0.0), channels)
    std = _channel_param("std", options.get("std", 1.0), channels)
    if np.any(std == 0):
        raise ValueError("Invalid config: std must not contain zeros")

    def _normalize(sample: Sample) -> Sample:
        data = np.asarray(sample.data, dtype=np.float32)
        return Sample(label=sample.label, data=(data * scale - mean) / std)

    return await map_data_source(source, _normalize)
