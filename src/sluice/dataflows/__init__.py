"""
Dataflows builtin.

- `shuffle`: permutação reprodutível de splits
- `image_normalize`: escala/padronização float32 de imagens
- `table_vectorize`: linha de tabela → vetor numpy de features

Todo entry segue o contrato `async main(source, options, context) -> DataSource`.
"""
