# tests/builtins/test_table_vectorize_dataflow.py
import asyncio
import math

import numpy as np
import pytest

from sluice.core.accessor import read_all
from sluice.core.datasource import make_data_source
from sluice.core.exceptions import IncompatibleDataSource
from sluice.core.types import Sample, TableColumn, TableSchema
from sluice.dataflows import table_vectorize


def test_table_vectorize_uses_data_keys(ctx, table_source):
    out = asyncio.run(table_vectorize.main(table_source, {}, ctx))

    async def scenario():
        return await out.get_data_source_meta(), await read_all(out.train)

    meta, rows = asyncio.run(scenario())
    assert rows[1].data.dtype == np.float32
    np.testing.assert_array_equal(rows[1].data, np.array([5.0, 6.0], dtype=np.float32))
    assert meta.data_keys == ("x1", "x2")
    assert meta.label_map == {0: "neg", 1: "pos"}
    assert meta.size.train == 3


def test_table_vectorize_selected_columns_and_fill_value(ctx):
    schema = TableSchema(
        (TableColumn("a", "number"), TableColumn("b", "bool"), TableColumn("name", "string"))
    )
    source = make_data_source(
        train=[Sample(0, {"a": 1.5, "b": True, "name": "x"}), Sample(1, {"a": None, "b": False, "name": "y"})],
        test=[Sample(0, {"a": 2.0, "b": None, "name": "z"})],
        table_schema=schema,
    )

    out = asyncio.run(table_vectorize.main(source, {"columns": ["b", "a"], "fill_value": -1}, ctx))
    rows = asyncio.run(read_all(out.train))
    np.testing.assert_array_equal(rows[0].data, [1.0, 1.5])
    np.testing.assert_array_equal(rows[1].data, [0.0, -1.0])
    meta = asyncio.run(out.get_data_source_meta())
    assert meta.table_schema.names == ["b", "a"]


def test_table_vectorize_defaults_to_numeric_columns_with_nan_fill(ctx):
    schema = TableSchema((TableColumn("a", "number"), TableColumn("name", "string")))
    source = make_data_source(
        train=[Sample(0, {"a": None, "name": "x"})],
        test=[],
        table_schema=schema,
    )
    out = asyncio.run(table_vectorize.main(source, {}, ctx))
    row = asyncio.run(out.train.next())
    assert row.data.shape == (1,)
    assert math.isnan(row.data[0])


def test_table_vectorize_rejects_string_column(ctx):
    schema = TableSchema((TableColumn("name", "string"),))
    source = make_data_source(train=[Sample(0, {"name": "x"})], test=[], table_schema=schema)
    with pytest.raises(IncompatibleDataSource):
        asyncio.run(table_vectorize.main(source, {"columns": ["name"]}, ctx))


def test_table_vectorize_rejects_image_source(ctx, image_source):
    with pytest.raises(IncompatibleDataSource):
        asyncio.run(table_vectorize.main(image_source, {}, ctx))
