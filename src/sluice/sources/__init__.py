"""
Data sources builtin.

- `csv_table`: tabela CSV (pandas), split reprodutível ou arquivos por split
- `npy_image`: imagens em arquivos `.npy` por split (memory-mapped)

Todo entry segue o contrato `async main(options, context) -> DataSource`.
"""
