# tests/core/datasource/test_dataflow_stages.py
"""
Testes dos stages transparentes e do encadeamento de dataflows.
"""

import asyncio

import pytest

from sluice.core.accessor import read_all
from sluice.core.dataflow import apply_dataflows, map_data_source, permute_data_source
from sluice.core.exceptions import DataSourceContractError
from sluice.core.datasource import DataSource
from sluice.core.types import Sample, TableDataSourceMeta, DataSourceSize, TableSchema


def test_map_data_source_transforms_every_split(image_source):
    async def scenario():
        out = await map_data_source(image_source, lambda s: Sample(s.label, s.data.shape))
        assert await out.get_data_source_meta() == await image_source.get_data_source_meta()
        for _, accessor in out.splits():
            assert all(s.data == (4, 4, 1) for s in await read_all(accessor))
        assert out.validation is not None

    asyncio.run(scenario())


def test_map_data_source_accepts_replacement_meta(table_source):
    async def scenario():
        meta = await table_source.get_data_source_meta()
        new_meta = TableDataSourceMeta(size=meta.size, table_schema=TableSchema(()), label_map=meta.label_map)
        out = await map_data_source(table_source, lambda s: s, meta=new_meta)
        assert await out.get_data_source_meta() is new_meta

    asyncio.run(scenario())


def test_permute_only_listed_splits(table_source):
    async def scenario():
        out = await permute_data_source(table_source, {"train": [2, 0, 1]})
        train = [s.data["x1"] for s in await read_all(out.train)]
        assert train == [0.5, 0.0, 5.0]
        assert out.test is table_source.test

    asyncio.run(scenario())


def test_apply_dataflows_preserves_declared_order(table_source, ctx):
    async def add_one(source, options, context):
        return await map_data_source(source, lambda s: Sample(s.label, s.data["x1"] + options["delta"]))

    async def times_ten(source, options, context):
        context.log(stage_id="times_ten", level="info", message="applied")
        return await map_data_source(source, lambda s: Sample(s.label, s.data * 10))

    async def scenario():
        out = await apply_dataflows(table_source, [(add_one, {"delta": 1}), (times_ten, {})], ctx)
        assert [s.data for s in await read_all(out.train)] == [10.0, 60.0, 15.0]
        assert ctx.events_for("times_ten")[0]["message"] == "applied"

    asyncio.run(scenario())


def test_apply_dataflows_rejects_invalid_stage_output(table_source, ctx):
    async def broken(source, options, context):
        return [source.train]

    async def scenario():
        with pytest.raises(DataSourceContractError) as ei:
            await apply_dataflows(table_source, [(broken, {})], ctx)
        assert ei.value.details["stage"] == "dataflow[0]"

    asyncio.run(scenario())


def test_dataflow_may_materialize_new_source(ctx):
    from sluice.core.datasource import make_data_source

    src = make_data_source(train=[Sample(0, 1), Sample(1, 2)], test=[Sample(0, 3)], table_schema=TableSchema(()))

    async def keep_label_zero(source, options, context):
        rows = [s for s in await read_all(source.train) if s.label == 0]
        test = await read_all(source.test)
        return make_data_source(train=rows, test=test, table_schema=TableSchema(()))

    async def scenario():
        out = await apply_dataflows(src, [(keep_label_zero, {})], ctx)
        meta = await out.get_data_source_meta()
        assert meta.size == DataSourceSize(train=1, test=1)

    asyncio.run(scenario())


class _PlainAccessor:
    """Accessor só com next / next_batch / seek (sem `size`)."""

    def __init__(self, samples):
        self._samples = list(samples)
        self._pos = 0

    async def next(self):
        batch = await self.next_batch(1)
        return batch[0] if batch else None

    async def next_batch(self, batch_size):
        if self._pos >= len(self._samples):
            return None
        out = self._samples[self._pos:self._pos + batch_size]
        self._pos += len(out)
        return out

    async def seek(self, pos):
        self._pos = pos


class _DuckSource:
    """Data source de terceiros que não herda de DataSource."""

    def __init__(self, meta, train, test, validation=None):
        self._meta = meta
        self.train = train
        self.test = test
        self.validation = validation

    async def get_data_source_meta(self):
        return self._meta


def _plain_meta(train, test, validation=None):
    return TableDataSourceMeta(
        size=DataSourceSize(train=train, test=test, validation=validation),
        table_schema=TableSchema(()),
        label_map={0: "a", 1: "b"},
    )


def _plain_source():
    return DataSource(
        meta=_plain_meta(3, 1),
        train=_PlainAccessor([Sample(i % 2, i) for i in range(3)]),
        test=_PlainAccessor([Sample(0, 9)]),
    )


def test_transparent_stages_accept_protocol_only_accessors():
    async def scenario():
        mapped = await map_data_source(_plain_source(), lambda s: Sample(s.label, s.data + 1))
        assert [s.data for s in await read_all(mapped.train)] == [1, 2, 3]
        assert [s.data for s in await read_all(mapped.test)] == [10]

        permuted = await permute_data_source(_plain_source(), {"train": [2, 1, 0]})
        assert [s.data for s in await read_all(permuted.train)] == [2, 1, 0]

    asyncio.run(scenario())


def test_apply_dataflows_rejects_validation_missing_from_metadata(table_source, ctx):
    async def undeclared_validation(source, options, context):
        meta = await source.get_data_source_meta()
        return _DuckSource(meta, source.train, source.test, validation=source.test)

    async def scenario():
        with pytest.raises(DataSourceContractError) as ei:
            await apply_dataflows(table_source, [(undeclared_validation, {})], ctx)
        assert ei.value.details["split"] == "validation"
        assert ei.value.details["stage"] == "dataflow[0]"

    asyncio.run(scenario())


def test_apply_dataflows_rejects_declared_validation_without_accessor(ctx):
    source = _DuckSource(_plain_meta(3, 1, validation=2), _PlainAccessor([]), _PlainAccessor([]))

    async def scenario():
        with pytest.raises(DataSourceContractError) as ei:
            await apply_dataflows(source, [], ctx)
        assert ei.value.details["declared_size"] == 2

    asyncio.run(scenario())
