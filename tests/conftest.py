# tests/conftest.py
"""
Fixtures compartilhados para testes do Sluice.

Este módulo fornece:
- workspace e ExecutionContext isolados por teste (via `tmp_path`)
- data sources mínimos em memória (tabela e imagem)
- arquivos de dados pequenos e determinísticos (CSV, .npy)
- um arquivo de pipeline YAML de referência

Decisões arquiteturais:
    - Coroutines são executadas com `asyncio.run` dentro dos próprios testes
    - Dados retornados são determinísticos e isolados
    - Imports do core são feitos de forma lazy para falhar com mensagens claras

Limites explícitos:
    - Não substitui testes de integração do runner
    - Não contém lógica de domínio
"""

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def workspace(tmp_path):
    """Workspace exclusivo (lock adquirido) liberado ao fim do teste."""
    from sluice.core.context.workspace import Workspace

    ws = Workspace.acquire(tmp_path / "ws", run_id="run-test-001")
    yield ws
    ws.release()


@pytest.fixture
def ctx(workspace):
    """ExecutionContext determinístico sobre o workspace do teste."""
    from sluice.core.context.context import ExecutionContext

    return ExecutionContext(run_id="run-test-001", workspace=workspace)


@pytest.fixture
def table_source():
    """
    Data source de tabela do cenário de referência.

    size = {train: 3, test: 1}, labels de treino [0, 1, 0],
    label_map = {0: "neg", 1: "pos"}.
    """
    from sluice.core.datasource import make_data_source
    from sluice.core.types import Sample, TableColumn, TableSchema

    schema = TableSchema((TableColumn("x1", "number"), TableColumn("x2", "number")))
    train = [
        Sample(0, {"x1": 0.0, "x2": 1.0}),
        Sample(1, {"x1": 5.0, "x2": 6.0}),
        Sample(0, {"x1": 0.5, "x2": 1.5}),
    ]
    test = [Sample(1, {"x1": 4.5, "x2": 5.5})]
    return make_data_source(
        train=train,
        test=test,
        table_schema=schema,
        data_keys=["x1", "x2"],
        label_map={0: "neg", 1: "pos"},
    )


@pytest.fixture
def image_source():
    """Data source de imagem 4x4x1 com train/test/validation em memória."""
    from sluice.core.datasource import make_data_source
    from sluice.core.types import ImageDimension, Sample

    rng = np.random.default_rng(0)

    def _split(n):
        return [Sample(int(i % 2), rng.integers(0, 256, size=(4, 4, 1)).astype(np.uint8)) for i in range(n)]

    return make_data_source(
        train=_split(6),
        test=_split(2),
        validation=_split(2),
        dimension=ImageDimension(x=4, y=4, z=1),
        label_map={0: "zero", 1: "one"},
    )


@pytest.fixture
def separable_frame() -> pd.DataFrame:
    """Tabela linearmente separável (40 linhas, 2 classes balanceadas)."""
    rows = []
    for i in range(20):
        rows.append({"x1": float(i % 5), "x2": float(i % 3), "flag": i % 2 == 0, "species": "setosa"})
        rows.append({"x1": 10.0 + i % 5, "x2": 10.0 + i % 3, "flag": i % 2 == 1, "species": "virginica"})
    return pd.DataFrame(rows)


@pytest.fixture
def separable_csv(workspace, separable_frame):
    """CSV em `workspace.data_dir`; retorna o nome relativo do arquivo."""
    path = workspace.data_dir / "separable.csv"
    separable_frame.to_csv(path, index=False)
    return "separable.csv"


@pytest.fixture
def npy_dir(tmp_path):
    """Diretório com train/test em `.npy` (imagens 5x5) + labels.txt."""
    d = tmp_path / "npy"
    d.mkdir()
    rng = np.random.default_rng(1)
    for split, n in (("train", 8), ("test", 4)):
        np.save(d / f"{split}_images.npy", rng.integers(0, 256, size=(n, 5, 5)).astype(np.uint8))
        np.save(d / f"{split}_labels.npy", np.arange(n, dtype=np.int64) % 2)
    (d / "labels.txt").write_text("cat\ndog\n", encoding="utf-8")
    return d


@pytest.fixture
def pipeline_yaml() -> str:
    """Pipeline de referência: csv → shuffle → vectorize → sklearn."""
    return """\
spec_version: "1"
type: table-classification
datasource:
  ref: csv_table
  options:
    path: separable.csv
    label: species
    features: [x1, x2, flag]
    test_size: 0.25
    seed: 7
    stratify: true
dataflow:
  - ref: shuffle
    options: {seed: 3}
  - table_vectorize
model:
  ref: sklearn_classifier
  options:
    estimator: logistic_regression
"""
