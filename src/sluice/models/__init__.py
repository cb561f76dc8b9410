"""
Modelos builtin.

- `registry`: catálogo explícito de estimadores scikit-learn
- `sklearn_classifier`: entry de modelo `async main(runtime, options, context)`
"""
