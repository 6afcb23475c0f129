"""
Fixtures compartilhadas dos testes do Search Gate.

FakeClock avança o tempo sem dormir; ScriptedSearch devolve uma sequência
pré-definida de RawResult e registra quando cada chamada aconteceu.
"""

import asyncio
from typing import List, Optional, Sequence, Tuple, Union

import pytest

from app.core.clock import Clock
from app.core.config_loader import reset_cache
from app.services.search_gate import GateConfig, RawResult, SearchProxy, reset_search_proxy


class FakeClock(Clock):
    """Relógio controlado pelo teste."""

    def __init__(self, start: float = 1000.0):
        self._now = start
        self.sleeps: List[float] = []
        # quando definido, sleep() só termina depois de hold.set()
        self.hold: Optional[asyncio.Event] = None

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.hold is not None:
            await self.hold.wait()
        self._now += seconds
        # cede o loop como um sleep real faria
        await asyncio.sleep(0)


Step = Union[RawResult, BaseException]


class ScriptedSearch:
    """
    Colaborador de saída falso.

    Cada chamada consome o próximo passo do roteiro (RawResult ou exceção a
    levantar). Sem roteiro restante, devolve `default`.
    """

    def __init__(self, clock: FakeClock, steps: Sequence[Step] = (), default: Optional[RawResult] = None):
        self._clock = clock
        self._steps = list(steps)
        self._default = default or RawResult.success({"itemSummaries": [], "total": 0})
        self.calls: List[Tuple[str, bool, str, float]] = []
        self.gate: Optional[asyncio.Event] = None

    def push(self, *steps: Step) -> None:
        self._steps.extend(steps)

    @property
    def dispatch_times(self) -> List[float]:
        return [c[3] for c in self.calls]

    async def __call__(self, keyword: str, filter_flag: bool, credentials: str) -> RawResult:
        self.calls.append((keyword, filter_flag, credentials, self._clock.now()))
        if self.gate is not None:
            await self.gate.wait()
        step = self._steps.pop(0) if self._steps else self._default
        if isinstance(step, BaseException):
            raise step
        return step


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gate_config() -> GateConfig:
    """Valores padrão do contrato, sem timeout por tentativa."""
    return GateConfig(
        min_spacing=5.0,
        base_delay=1.0,
        max_attempts=3,
        max_consecutive_failures=3,
        cache_ttl=300.0,
        max_cooldown=60.0,
        recovery_timeout=60.0,
        attempt_timeout=None,
    )


@pytest.fixture
def search(clock) -> ScriptedSearch:
    return ScriptedSearch(clock)


@pytest.fixture
def proxy(search, gate_config, clock) -> SearchProxy:
    return SearchProxy(search_fn=search, config=gate_config, default_credentials="test-token", clock=clock)


@pytest.fixture(autouse=True)
def _isolate_singletons():
    """Nenhum teste enxerga o proxy ou o cache de config de outro."""
    reset_search_proxy()
    reset_cache()
    yield
    reset_search_proxy()
    reset_cache()
