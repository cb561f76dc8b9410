"""
Hash canônico de configuração.

O hash SHA-256 da configuração efetiva é a **identidade do pipeline**:
é a chave sob a qual o runtime persiste e relê modelos. Dois arquivos
estruturalmente equivalentes (mesmo conteúdo, chaves em outra ordem)
produzem o mesmo hash e, portanto, compartilham o modelo salvo.

Política (v1):
    - JSON canônico, chaves ordenadas, separadores compactos
    - UTF-8
    - SHA-256, 64 caracteres hexadecimais
"""

import hashlib
import json
from typing import Any, Dict


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera o hash determinístico de uma configuração.

    Raises:
        TypeError: se `config` não for dict ou contiver valores não
            serializáveis em JSON.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
