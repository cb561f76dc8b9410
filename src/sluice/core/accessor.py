"""
Data Accessor — cursor lazy sobre um split de um data source.

Este módulo define o contrato central do Sluice: um cursor assíncrono,
stateful e pull-based que entrega amostras de um único split
(train/test/validation) sem expor o armazenamento físico.

Operações do contrato:
    - `next()`             → amostra na posição atual, avançando 1
    - `next_batch(n)`      → até `n` amostras consecutivas
    - `seek(pos)`          → reposiciona o cursor em offset absoluto

Sentinel:
    - Exaustão é representada por `None`, nunca por exceção
    - `next()` após exaustão continua retornando `None` (não é erro)
    - `next_batch(n)` retorna `None` apenas quando a posição já está no fim
      no início da chamada; um lote final curto é um resultado válido

Política de limites (seek):
    - `0 <= pos <= size`; `pos == size` posiciona o cursor na exaustão
    - posição negativa, acima de `size` ou não inteira → `SeekOutOfRange`
    - nunca há clamp silencioso

Concorrência:
    - Cada chamada é um ponto de suspensão (pode aguardar disco, rede, etc.)
    - Uma instância NÃO suporta uso reentrante: uma chamada iniciada enquanto
      outra ainda está suspensa na mesma instância levanta `AccessorBusy`
    - Instâncias distintas (ex.: train e test) são independentes

Cancelamento (ponto de extensão):
    - Leituras executam dentro da task do chamador; cancelamento e timeouts
      do asyncio se aplicam naturalmente
    - Uma leitura cancelada ou com falha não avança a posição
    - O contrato não impõe mecanismo próprio de cancelamento

Falhas:
    - Erros ao materializar amostras são `SampleMaterializationError`,
      distintos da exaustão
    - Nenhuma retry ou recuperação é feita aqui

Limites explícitos:
    - Não define formato de armazenamento
    - Não conhece metadata do data source (apenas o tamanho do split)
"""

from __future__ import annotations

import inspect
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    List,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    Union,
    runtime_checkable,
)

from sluice.core.exceptions import (
    AccessorBusy,
    InvalidBatchSize,
    SampleMaterializationError,
    SeekOutOfRange,
    SluiceException,
)
from sluice.core.types.sample import Sample


T = TypeVar("T")
U = TypeVar("U")


@runtime_checkable
class DataAccessor(Protocol[T]):
    """
    Contrato canônico de um Data Accessor.

    Conformidade é estrutural (duck typing, `@runtime_checkable`): scripts de
    terceiros não precisam herdar de `BaseDataAccessor`, desde que
    implementem as três operações assíncronas com a semântica documentada
    neste módulo.
    """

    async def next(self) -> Optional[Sample[T]]:
        ...

    async def next_batch(self, batch_size: int) -> Optional[List[Sample[T]]]:
        ...

    async def seek(self, pos: int) -> None:
        ...


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class BaseDataAccessor(Generic[T]):
    """
    Máquina de estados do cursor.

    Subclasses fornecem o tamanho declarado do split e a leitura bruta
    `_read(pos, count)`; esta classe garante:
        - avanço monotônico em `next`/`next_batch`
        - sentinel `None` na exaustão
        - validação de `batch_size` e da posição de `seek`
        - posição inalterada quando a leitura falha
        - proteção contra uso reentrante da mesma instância

    Invariantes:
        - `0 <= pos <= size` em todo momento
        - `_read` só é chamado com `0 <= pos` e `pos + count <= size`
        - `_read` deve retornar exatamente `count` amostras

    Atributos:
        split: nome do split (usado apenas em diagnósticos)
    """

    def __init__(self, *, size: int, split: str = "unknown"):
        if not _is_index(size) or size < 0:
            raise ValueError(f"Accessor size must be a non-negative int, got {size!r}")
        self._size = size
        self._pos = 0
        self._busy = False
        self.split = split

    @property
    def size(self) -> int:
        """Tamanho declarado do split (número exato de amostras)."""
        return self._size

    async def _read(self, pos: int, count: int) -> Sequence[Sample[T]]:
        raise NotImplementedError

    # -----------------------------
    # Reentrância
    # -----------------------------
    def _enter(self, op: str) -> None:
        if self._busy:
            raise AccessorBusy(
                message="Accessor is already serving another call",
                details={"split": self.split, "operation": op},
                hint="Serialize as chamadas por instância (uma task dona de cada accessor).",
            )
        self._busy = True

    def _exit(self) -> None:
        self._busy = False

    async def _materialize(self, pos: int, count: int) -> List[Sample[T]]:
        try:
            samples = list(await self._read(pos, count))
        except SluiceException:
            raise
        except Exception as e:
            raise SampleMaterializationError(
                message=f"Failed to materialize sample(s) at position {pos}",
                details={
                    "split": self.split,
                    "position": pos,
                    "count": count,
                    "cause": e.__class__.__name__,
                    "cause_message": str(e),
                },
            ) from e

        if len(samples) != count:
            raise SampleMaterializationError(
                message="Storage returned an unexpected number of samples",
                details={"split": self.split, "position": pos, "expected": count, "received": len(samples)},
            )
        for s in samples:
            if not isinstance(s, Sample):
                raise SampleMaterializationError(
                    message="Storage produced an object that is not a Sample",
                    details={"split": self.split, "position": pos, "received": type(s).__name__},
                )
        return samples

    # -----------------------------
    # Contrato
    # -----------------------------
    async def next(self) -> Optional[Sample[T]]:
        self._enter("next")
        try:
            if self._pos >= self._size:
                return None
            (sample,) = await self._materialize(self._pos, 1)
            self._pos += 1
            return sample
        finally:
            self._exit()

    async def next_batch(self, batch_size: int) -> Optional[List[Sample[T]]]:
        if not _is_index(batch_size) or batch_size <= 0:
            raise InvalidBatchSize(
                message="batch_size must be a positive int",
                details={"split": self.split, "batch_size": repr(batch_size)},
            )
        self._enter("next_batch")
        try:
            if self._pos >= self._size:
                return None
            count = min(batch_size, self._size - self._pos)
            samples = await self._materialize(self._pos, count)
            self._pos += count
            return samples
        finally:
            self._exit()

    async def seek(self, pos: int) -> None:
        if not _is_index(pos) or pos < 0 or pos > self._size:
            raise SeekOutOfRange(
                message=f"seek position out of range [0, {self._size}]",
                details={"split": self.split, "position": repr(pos), "size": self._size},
            )
        self._enter("seek")
        try:
            await self._on_seek(pos)
            self._pos = pos
        finally:
            self._exit()

    async def _on_seek(self, pos: int) -> None:
        """Gancho para adapters que precisam reposicionar um cursor físico."""

    # -----------------------------
    # Recursos
    # -----------------------------
    async def close(self) -> None:
        """Libera recursos de armazenamento pertencentes ao accessor."""

    async def __aenter__(self) -> "BaseDataAccessor[T]":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(split={self.split!r}, size={self._size}, pos={self._pos})"


# ---------------------------------------------------------------------------
# Accessors concretos
# ---------------------------------------------------------------------------

class ArrayDataAccessor(BaseDataAccessor[T]):
    """Accessor sobre uma sequência de amostras já materializada em memória."""

    def __init__(self, samples: Sequence[Sample[T]], *, split: str = "unknown"):
        self._samples = list(samples)
        super().__init__(size=len(self._samples), split=split)

    async def _read(self, pos: int, count: int) -> Sequence[Sample[T]]:
        return self._samples[pos:pos + count]


def _accessor_size(inner: Any, size: Optional[int] = None) -> int:
    """Tamanho do accessor decorado.

    O protocolo não exige `size`: quando o chamador conhece o tamanho do
    split (pela metadata), ele é informado explicitamente; se o interno
    também expõe `size`, os dois precisam coincidir.
    """
    inner_size = getattr(inner, "size", None)
    if size is None:
        if not _is_index(inner_size):
            raise TypeError(
                f"Wrapped accessor must expose an int `size` or receive size=, got {type(inner).__name__}"
            )
        return inner_size
    if not _is_index(size) or size < 0:
        raise ValueError(f"size must be a non-negative int, got {size!r}")
    if _is_index(inner_size) and inner_size != size:
        raise ValueError(f"size={size} does not match wrapped accessor size {inner_size}")
    return size


SampleFn = Callable[[Sample[T]], Union[Sample[U], Awaitable[Sample[U]]]]


class MappedDataAccessor(BaseDataAccessor[U]):
    """
    Decorator que aplica `fn` a cada amostra do accessor interno.

    O accessor interno passa a pertencer a este decorator: toda leitura
    reposiciona o interno na posição do decorator antes de ler, de modo que
    uma falha de `fn` não deixa os dois cursores dessincronizados.

    `fn` pode ser síncrona ou assíncrona e deve retornar um `Sample`.
    """

    def __init__(
        self,
        inner: DataAccessor[T],
        fn: SampleFn,
        *,
        split: Optional[str] = None,
        size: Optional[int] = None,
    ):
        super().__init__(size=_accessor_size(inner, size), split=split or getattr(inner, "split", "unknown"))
        self._inner = inner
        self._fn = fn

    async def _apply(self, sample: Sample[T]) -> Sample[U]:
        out = self._fn(sample)
        if inspect.isawaitable(out):
            out = await out
        return out

    async def _read(self, pos: int, count: int) -> Sequence[Sample[U]]:
        await self._inner.seek(pos)
        batch = await self._inner.next_batch(count)
        if batch is None or len(batch) != count:
            raise SampleMaterializationError(
                message="Wrapped accessor ended before its declared size",
                details={"split": self.split, "position": pos, "expected": count},
            )
        return [await self._apply(s) for s in batch]

    async def close(self) -> None:
        close = getattr(self._inner, "close", None)
        if close is not None:
            await close()


class PermutedDataAccessor(BaseDataAccessor[T]):
    """Decorator que expõe o accessor interno numa ordem de índices explícita."""

    def __init__(
        self,
        inner: DataAccessor[T],
        order: Sequence[int],
        *,
        split: Optional[str] = None,
        size: Optional[int] = None,
    ):
        size = _accessor_size(inner, size)
        order = [int(i) for i in order]
        if sorted(order) != list(range(size)):
            raise ValueError("order must be a permutation of range(size)")
        super().__init__(size=size, split=split or getattr(inner, "split", "unknown"))
        self._inner = inner
        self._order = order

    async def _read(self, pos: int, count: int) -> Sequence[Sample[T]]:
        out: List[Sample[T]] = []
        for idx in self._order[pos:pos + count]:
            await self._inner.seek(idx)
            sample = await self._inner.next()
            if sample is None:
                raise SampleMaterializationError(
                    message="Wrapped accessor ended before its declared size",
                    details={"split": self.split, "position": idx},
                )
            out.append(sample)
        return out

    async def close(self) -> None:
        close = getattr(self._inner, "close", None)
        if close is not None:
            await close()


# ---------------------------------------------------------------------------
# Helpers de consumo
# ---------------------------------------------------------------------------

async def iter_samples(accessor: DataAccessor[T], batch_size: int = 32) -> AsyncIterator[Sample[T]]:
    """Itera do cursor atual até a exaustão, lendo em lotes."""
    while True:
        batch = await accessor.next_batch(batch_size)
        if batch is None:
            return
        for sample in batch:
            yield sample


async def read_all(accessor: DataAccessor[T], batch_size: int = 256, *, rewind: bool = True) -> List[Sample[T]]:
    """Lê todas as amostras do split (a partir do início quando `rewind`)."""
    if rewind:
        await accessor.seek(0)
    return [s async for s in iter_samples(accessor, batch_size)]
