"""
Dataflow builtin: `shuffle` (v1).

Reordena os splits indicados com uma permutação reprodutível
(`numpy.random.default_rng(seed)`), decorando os accessors da entrada.

Opções:
    seed: obrigatória (determinismo)
    splits: splits a embaralhar (default ["train"])
"""

from __future__ import annotations

from typing import Any, Dict, List

import numpy as np

from sluice.core.context.context import ExecutionContext
from sluice.core.dataflow import permute_data_source
from sluice.core.datasource import SPLITS, DataSource, DataSourceApi


async def main(source: DataSourceApi, options: Dict[str, Any], context: ExecutionContext) -> DataSource:
    seed = options.get("seed")
    if seed is None or isinstance(seed, bool) or not isinstance(seed, int):
        raise ValueError("Invalid config: seed (int) is required for shuffle")
    splits = options.get("splits", ["train"])
    if isinstance(splits, str):
        splits = [splits]
    unknown = [s for s in splits if s not in SPLITS]
    if unknown:
        raise ValueError(f"Invalid config: unknown splits {unknown}")

    meta = await source.get_data_source_meta()
    rng = np.random.default_rng(seed)
    orders: Dict[str, List[int]] = {}
    for name in splits:
        size = meta.size.of(name)
        if size is None:
            continue
        orders[name] = rng.permutation(size).tolist()

    return await permute_data_source(source, orders)
