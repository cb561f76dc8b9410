# tests/builtins/test_npy_image_source.py
import asyncio
import shutil

import numpy as np
import pytest

from sluice.core.accessor import read_all
from sluice.core.exceptions import DataSourceContractError, SampleMaterializationError
from sluice.core.types import DataSourceSize, ImageDimension
from sluice.sources import npy_image


def _open(options, ctx):
    return asyncio.run(npy_image.main(options, ctx))


def test_npy_image_opens_splits_with_channel_axis(ctx, npy_dir):
    source = _open({"dir": str(npy_dir)}, ctx)

    async def scenario():
        return await source.get_data_source_meta(), await read_all(source.train, batch_size=3)

    meta, train = asyncio.run(scenario())
    assert meta.size == DataSourceSize(train=8, test=4)
    assert meta.dimension == ImageDimension(x=5, y=5, z=1)
    assert meta.label_map == {0: "cat", 1: "dog"}
    assert len(train) == 8
    assert train[0].data.shape == (5, 5, 1)
    assert [s.label for s in train] == [i % 2 for i in range(8)]
    assert all(type(s.label) is int for s in train)


def test_npy_image_resolves_relative_dir_and_label_names(ctx, npy_dir):
    shutil.copytree(npy_dir, ctx.workspace.data_dir / "imgs")
    (ctx.workspace.data_dir / "imgs" / "labels.txt").unlink()

    meta = asyncio.run(_open({"dir": "imgs", "label_names": ["left", "right"]}, ctx).get_data_source_meta())
    assert meta.label_map == {0: "left", 1: "right"}


def test_npy_image_without_names_uses_observed_labels(ctx, npy_dir):
    (npy_dir / "labels.txt").unlink()
    meta = asyncio.run(_open({"dir": str(npy_dir)}, ctx).get_data_source_meta())
    assert meta.label_map == {0: "0", 1: "1"}


def test_npy_image_rejects_uncovered_labels(ctx, npy_dir):
    with pytest.raises(DataSourceContractError):
        _open({"dir": str(npy_dir), "label_names": ["cat"]}, ctx)


def test_npy_image_requires_test_split(ctx, npy_dir):
    (npy_dir / "test_images.npy").unlink()
    with pytest.raises(DataSourceContractError):
        _open({"dir": str(npy_dir)}, ctx)


def test_npy_image_rejects_mismatched_dimensions(ctx, npy_dir):
    np.save(npy_dir / "validation_images.npy", np.zeros((2, 6, 6), dtype=np.uint8))
    np.save(npy_dir / "validation_labels.npy", np.zeros(2, dtype=np.int64))
    with pytest.raises(DataSourceContractError):
        _open({"dir": str(npy_dir)}, ctx)


def test_npy_image_rejects_label_count_mismatch(ctx, npy_dir):
    np.save(npy_dir / "train_labels.npy", np.zeros(3, dtype=np.int64))
    with pytest.raises(DataSourceContractError):
        _open({"dir": str(npy_dir)}, ctx)


def test_npy_image_missing_dir(ctx, tmp_path):
    with pytest.raises(FileNotFoundError):
        _open({"dir": str(tmp_path / "absent")}, ctx)


def test_npy_image_close_releases_arrays(ctx, npy_dir):
    source = _open({"dir": str(npy_dir)}, ctx)

    async def scenario():
        train = await read_all(source.train)
        await source.close()
        assert source.train._images is None
        assert source.train._labels is None
        # amostras já lidas são cópias e continuam válidas
        assert not isinstance(train[0].data, np.memmap)
        assert train[0].data.shape == (5, 5, 1)
        with pytest.raises(SampleMaterializationError):
            await read_all(source.train)
        await source.close()

    asyncio.run(scenario())
