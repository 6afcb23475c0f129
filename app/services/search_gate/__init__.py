"""
Search Gate - Controle de acesso à API de busca do eBay.

Este módulo centraliza a política entre as requisições dos clientes e a
chamada de saída para o eBay:
- Cache de buscas recentes (TTL)
- Espaçamento mínimo global entre chamadas (AdmissionGate)
- Circuito de falhas consecutivas com cooldown escalonado (FailureTracker)
- Retry com backoff exponencial (RetryPolicy)
- Orquestração e deduplicação de buscas idênticas (SearchProxy)
"""

from .admission_gate import (
    Admission,
    AdmissionGate,
)
from .errors import (
    AdmissionRejected,
    CircuitOpen,
    InvalidInput,
    MissingCredentials,
    RetriesExhausted,
    RetryableDownstreamError,
    SearchGateError,
    TerminalDownstreamError,
    TransportError,
)
from .failure_tracker import (
    CircuitState,
    FailureTracker,
)
from .gate_config import (
    GateConfig,
    load_gate_config,
)
from .models import (
    AttemptOutcome,
    CacheEntry,
    OutboundAttempt,
    ProxyResponse,
    RawResult,
    RetryOutcome,
    SearchQuery,
)
from .retry_policy import RetryPolicy
from .search_cache import SearchCache
from .search_proxy import (
    SearchProxy,
    get_search_proxy,
    reset_search_proxy,
)

__all__ = [
    # Gate
    "Admission",
    "AdmissionGate",
    # Falhas
    "CircuitState",
    "FailureTracker",
    # Retry
    "RetryPolicy",
    # Cache
    "SearchCache",
    # Orquestrador
    "SearchProxy",
    "get_search_proxy",
    "reset_search_proxy",
    # Config
    "GateConfig",
    "load_gate_config",
    # Modelos
    "AttemptOutcome",
    "CacheEntry",
    "OutboundAttempt",
    "ProxyResponse",
    "RawResult",
    "RetryOutcome",
    "SearchQuery",
    # Erros
    "AdmissionRejected",
    "CircuitOpen",
    "InvalidInput",
    "MissingCredentials",
    "RetriesExhausted",
    "RetryableDownstreamError",
    "SearchGateError",
    "TerminalDownstreamError",
    "TransportError",
]
