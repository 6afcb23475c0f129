"""
Search Proxy - Orquestrador do gate de busca no eBay.

Fluxo por requisição:
1. Valida e normaliza a query (400 sem tocar em estado)
2. Cache (hit -> 200 sem chamada de rede)
3. Junta-se a uma busca idêntica já em andamento, se houver
4. Sob o lock de estado: circuito (429 circuit_open) e espaçamento
   (429 admission_rejected); se admitido, carimba o despacho e segura o
   gate até o fim dos retries
5. Chamada ao eBay via RetryPolicy
6. Sob o lock de estado: sucesso zera falhas e grava cache; falha registra
   no FailureTracker (502); em ambos os casos libera o gate

Nenhum caminho levanta exceção para a camada HTTP: tudo vira ProxyResponse.
"""

import asyncio
import copy
import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from app.core.clock import Clock, system_clock
from .admission_gate import AdmissionGate
from .errors import (
    AdmissionRejected,
    CircuitOpen,
    InvalidInput,
    MissingCredentials,
    RetriesExhausted,
    SearchGateError,
    TerminalDownstreamError,
)
from .failure_tracker import FailureTracker
from .gate_config import GateConfig
from .models import ProxyResponse, RawResult, SearchQuery
from .retry_policy import RetryPolicy
from .search_cache import SearchCache

logger = logging.getLogger(__name__)

# performSearch(keyword, filter_flag, credentials) -> RawResult
SearchFn = Callable[[str, bool, str], Awaitable[RawResult]]


@dataclass
class ProxyMetrics:
    """Contadores do orquestrador."""
    total_requests: int = 0
    invalid_input: int = 0
    cache_hits: int = 0
    deduplicated: int = 0
    admission_rejected: int = 0
    circuit_open: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0


class SearchProxy:
    """
    Orquestra cache, circuito, gate de admissão e retry.

    Cache, FailureTracker e AdmissionGate são de posse desta instância e
    vivem enquanto o processo vive. Tracker e gate só são lidos/alterados
    sob `_state_lock`, então duas requisições nunca passam juntas pela
    checagem de espaçamento.
    """

    def __init__(
        self,
        search_fn: SearchFn,
        config: Optional[GateConfig] = None,
        default_credentials: Optional[str] = None,
        clock: Clock = system_clock
    ):
        """
        Args:
            search_fn: Colaborador de saída (ex.: EbayBrowseClient.search)
            config: Parâmetros do gate (default: GateConfig())
            default_credentials: Token usado quando a chamada não informa um
            clock: Fonte de tempo compartilhada por todos os componentes
        """
        self._search_fn = search_fn
        self._config = config or GateConfig()
        self._default_credentials = default_credentials
        self._clock = clock

        cfg = self._config
        self._cache = SearchCache(
            ttl_seconds=cfg.cache_ttl,
            max_entries=cfg.cache_max_entries,
            clock=clock
        )
        self._tracker = FailureTracker(
            max_failures=cfg.max_consecutive_failures,
            base_delay=cfg.base_delay,
            max_cooldown=cfg.max_cooldown,
            recovery_timeout=cfg.recovery_timeout,
            clock=clock
        )
        self._gate = AdmissionGate(min_spacing=cfg.min_spacing, clock=clock)
        self._retry = RetryPolicy(
            max_attempts=cfg.max_attempts,
            base_delay=cfg.base_delay,
            attempt_timeout=cfg.attempt_timeout,
            retry_after_max=cfg.retry_after_max,
            clock=clock
        )

        self._state_lock = asyncio.Lock()
        self._inflight: Dict[str, "asyncio.Task[ProxyResponse]"] = {}
        self._metrics = ProxyMetrics()

    @property
    def cache(self) -> SearchCache:
        return self._cache

    @property
    def failure_tracker(self) -> FailureTracker:
        return self._tracker

    @property
    def admission_gate(self) -> AdmissionGate:
        return self._gate

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    @property
    def config(self) -> GateConfig:
        return self._config

    @staticmethod
    def _error_response(error: SearchGateError) -> ProxyResponse:
        return ProxyResponse(
            status=error.status_code,
            body=error.to_body(),
            headers=error.headers()
        )

    async def handle(
        self,
        keyword: Any,
        filter_flag: Any = False,
        credentials: Optional[str] = None
    ) -> ProxyResponse:
        """
        Atende uma busca.

        Returns:
            ProxyResponse com status 200, 400, 429, 500 ou 502
        """
        self._metrics.total_requests += 1

        try:
            query = SearchQuery.normalize(keyword, filter_flag)
        except InvalidInput as e:
            self._metrics.invalid_input += 1
            logger.info(f"⚠️ Query inválida: {e.message}")
            return self._error_response(e)

        fingerprint = query.fingerprint

        entry = await self._cache.lookup(fingerprint)
        if entry is not None:
            self._metrics.cache_hits += 1
            logger.info(f"✅ Cache HIT: '{query.keyword}' (filter={query.filter_flag})")
            return ProxyResponse(
                status=200, body=copy.deepcopy(entry.payload), headers={"X-Cache": "HIT"}, cached=True
            )

        token = credentials or self._default_credentials
        if not token:
            logger.error("❌ Nenhuma credencial eBay configurada")
            return self._error_response(MissingCredentials("Missing eBay credentials"))

        task = self._inflight.get(fingerprint)
        if task is not None:
            self._metrics.deduplicated += 1
            logger.info(f"🔗 Busca idêntica em andamento, aguardando: '{query.keyword}'")
        else:
            task = asyncio.ensure_future(self._dispatch(query, token))
            self._inflight[fingerprint] = task
            task.add_done_callback(lambda _t, fp=fingerprint: self._inflight.pop(fp, None))

        # shield: se o cliente desconectar, a busca termina e o estado é atualizado mesmo assim
        response = await asyncio.shield(task)
        # cada chamador recebe sua própria cópia do corpo
        return dataclasses.replace(
            response, body=copy.deepcopy(response.body), headers=dict(response.headers)
        )

    async def _dispatch(self, query: SearchQuery, token: str) -> ProxyResponse:
        """Passa pelo circuito e pelo gate, chama o eBay e registra o desfecho."""
        async with self._state_lock:
            if self._tracker.is_blocked():
                self._metrics.circuit_open += 1
                wait = self._tracker.blocked_for()
                logger.warning(f"🔌 Circuit aberto, rejeitando '{query.keyword}' (aguardar {wait:.1f}s)")
                return self._error_response(CircuitOpen(
                    "Muitas falhas recentes na API eBay; tente novamente mais tarde",
                    wait_seconds=wait
                ))

            admission = self._gate.try_admit(self._tracker.current_cooldown())
            if not admission.admitted:
                self._metrics.admission_rejected += 1
                logger.info(
                    f"🚦 Rejeitado por espaçamento: '{query.keyword}' "
                    f"(aguardar {admission.wait_seconds:.3f}s)"
                )
                return self._error_response(AdmissionRejected(
                    "Chamada cedo demais para a cota do eBay",
                    wait_seconds=admission.wait_seconds
                ))

            self._tracker.mark_dispatch()
            self._metrics.dispatched += 1

        def on_attempt(attempt: int):
            # A primeira tentativa já foi carimbada pelo try_admit
            if attempt > 1:
                self._gate.mark_dispatch()

        def on_backoff(delay: float, retry_after: Optional[float]):
            # a próxima tentativa sai em `delay`; ninguém entra antes de min_spacing depois dela
            self._gate.defer(delay + self._gate.min_spacing)
            if retry_after:
                self._gate.defer(retry_after)

        start = time.perf_counter()
        try:
            outcome = await self._retry.execute(
                lambda: self._search_fn(query.keyword, query.filter_flag, token),
                on_attempt=on_attempt,
                label=query.keyword[:50],
                on_backoff=on_backoff
            )
        except asyncio.CancelledError:
            self._gate.release()
            raise
        except Exception as e:
            logger.error(f"❌ Erro inesperado na busca '{query.keyword}': {e}", exc_info=True)
            async with self._state_lock:
                self._tracker.on_failure()
                self._gate.release()
            self._metrics.failed += 1
            return ProxyResponse(
                status=500,
                body={"error": "internal_error", "message": str(e) or type(e).__name__}
            )
        duration_ms = (time.perf_counter() - start) * 1000

        async with self._state_lock:
            if outcome.ok:
                self._tracker.on_success()
                await self._cache.store(query.fingerprint, copy.deepcopy(outcome.payload))
            else:
                self._tracker.on_failure()
                if outcome.retry_after:
                    self._gate.defer(outcome.retry_after)
            self._gate.release()

        if outcome.ok:
            self._metrics.succeeded += 1
            logger.info(
                f"✅ eBay: busca '{query.keyword}' concluída "
                f"({outcome.attempt_count} tentativa(s), {duration_ms:.0f}ms)"
            )
            return ProxyResponse(
                status=200,
                body=outcome.payload,
                headers={"X-Cache": "MISS", "X-Attempts": str(outcome.attempt_count)}
            )

        self._metrics.failed += 1
        if outcome.retryable_exhausted:
            error: SearchGateError = RetriesExhausted(
                f"eBay indisponível após {outcome.attempt_count} tentativas",
                details=outcome.detail
            )
        else:
            error = TerminalDownstreamError("eBay rejeitou a requisição", details=outcome.detail)
        return self._error_response(error)

    def get_status(self) -> dict:
        """Retorna status consolidado do gate."""
        m = self._metrics
        return {
            "requests": dataclasses.asdict(m),
            "inflight": len(self._inflight),
            "cache": self._cache.get_status(),
            "failure_tracker": self._tracker.get_status(),
            "admission_gate": self._gate.get_status(self._tracker.current_cooldown()),
            "config": self._config.as_ms()
        }


_search_proxy: Optional[SearchProxy] = None


def get_search_proxy() -> SearchProxy:
    """Retorna a instância do processo, criando-a com o cliente eBay na primeira chamada."""
    global _search_proxy
    if _search_proxy is None:
        from app.core.config import settings
        from app.services.ebay_client import ebay_client
        from .gate_config import load_gate_config

        _search_proxy = SearchProxy(
            search_fn=ebay_client.search,
            config=load_gate_config(),
            default_credentials=settings.EBAY_ACCESS_TOKEN
        )
    return _search_proxy


def reset_search_proxy(proxy: Optional[SearchProxy] = None) -> None:
    """Substitui (ou descarta) a instância do processo. Útil para testes."""
    global _search_proxy
    _search_proxy = proxy
