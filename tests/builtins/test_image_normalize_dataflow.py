# tests/builtins/test_image_normalize_dataflow.py
import asyncio

import numpy as np
import pytest

from sluice.core.accessor import read_all
from sluice.core.datasource import DataSource
from sluice.core.exceptions import IncompatibleDataSource
from sluice.dataflows import image_normalize


def test_image_normalize_scales_to_unit_range(ctx, image_source):
    raw = asyncio.run(read_all(image_source.train))
    out = asyncio.run(image_normalize.main(image_source, {}, ctx))
    normalized = asyncio.run(read_all(out.train))

    assert normalized[0].data.dtype == np.float32
    np.testing.assert_allclose(normalized[0].data, raw[0].data.astype(np.float32) / 255.0, rtol=1e-6)
    assert [s.label for s in normalized] == [s.label for s in raw]
    assert out.validation is not None


def test_image_normalize_mean_and_std(ctx, image_source):
    raw = asyncio.run(read_all(image_source.test))
    out = asyncio.run(image_normalize.main(image_source, {"scale": 1.0, "mean": [100.0], "std": 2.0}, ctx))
    first = asyncio.run(out.test.next())
    np.testing.assert_allclose(first.data, (raw[0].data.astype(np.float32) - 100.0) / 2.0)


def test_image_normalize_rejects_zero_std(ctx, image_source):
    with pytest.raises(ValueError):
        asyncio.run(image_normalize.main(image_source, {"std": 0}, ctx))


def test_image_normalize_rejects_wrong_channel_count(ctx, image_source):
    with pytest.raises(ValueError):
        asyncio.run(image_normalize.main(image_source, {"mean": [0.1, 0.2, 0.3]}, ctx))


def test_image_normalize_rejects_table_source(ctx, table_source):
    with pytest.raises(IncompatibleDataSource):
        asyncio.run(image_normalize.main(table_source, {}, ctx))


class _Unsized:
    """Delega ao accessor interno expondo só o protocolo (sem `size`)."""

    def __init__(self, inner):
        self._inner = inner

    async def next(self):
        return await self._inner.next()

    async def next_batch(self, batch_size):
        return await self._inner.next_batch(batch_size)

    async def seek(self, pos):
        await self._inner.seek(pos)


def test_image_normalize_accepts_accessors_without_size(ctx, image_source):
    meta = asyncio.run(image_source.get_data_source_meta())
    source = DataSource(
        meta=meta,
        train=_Unsized(image_source.train),
        test=_Unsized(image_source.test),
        validation=_Unsized(image_source.validation),
    )
    raw = asyncio.run(read_all(image_source.train))

    out = asyncio.run(image_normalize.main(source, {}, ctx))
    normalized = asyncio.run(read_all(out.train))

    assert out.train.size == meta.size.train
    assert len(normalized) == len(raw)
    np.testing.assert_allclose(normalized[-1].data, raw[-1].data.astype(np.float32) / 255.0, rtol=1e-6)
