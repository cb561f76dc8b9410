"""
Scripts builtin do Sluice, registrados por id.

    datasource: csv_table, npy_image
    dataflow:   shuffle, image_normalize, table_vectorize
    model:      sklearn_classifier

Pipelines referenciam esses ids diretamente (`ref: csv_table`); scripts
próprios usam `py:` ou `script:`.
"""

from __future__ import annotations

from sluice.core.pipeline.registry import ScriptRegistry
from sluice.dataflows import image_normalize, shuffle, table_vectorize
from sluice.models import sklearn_classifier
from sluice.sources import csv_table, npy_image


def default_registry() -> ScriptRegistry:
    registry = ScriptRegistry()
    registry.add("csv_table", csv_table.main)
    registry.add("npy_image", npy_image.main)
    registry.add("shuffle", shuffle.main)
    registry.add("image_normalize", image_normalize.main)
    registry.add("table_vectorize", table_vectorize.main)
    registry.add("sklearn_classifier", sklearn_classifier.main)
    return registry
