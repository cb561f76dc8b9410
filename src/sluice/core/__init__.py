"""
Core do Sluice.

Implementação canônica dos contratos, independente de scripts concretos:

    - types     → `Sample`, `DataSourceMeta` e tipos de schema
    - accessor  → `DataAccessor` e decoradores de composição
    - datasource→ `DataSource` e checagem de contrato em fronteiras
    - dataflow  → contratos de entry e stages transparentes
    - context   → `Workspace`, `ModuleBridge`, `ExecutionContext`
    - runtime   → `Runtime`, `LocalRuntime`, `ModelStore`
    - config    → loader YAML/JSON, deep-merge, hashing
    - pipeline  → `PipelineMeta`, `ScriptRegistry`, `PipelineRunner`

Princípios fundamentais:
    - Exaustão é sentinel (`None`), falha é exceção tipada
    - Nenhuma recuperação silenciosa
    - Todo efeito colateral de uma run fica no seu workspace
"""
