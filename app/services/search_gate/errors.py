"""
Taxonomia de erros do Search Gate.

Cada erro que atravessa a fronteira do orquestrador sabe seu status HTTP e
como se serializar. Erros repetíveis (rate limit do eBay, transporte) são
consumidos dentro da política de retry e nunca chegam ao cliente.
"""

import math
from typing import Any, Dict, Optional


class SearchGateError(Exception):
    """Base para erros do gate."""
    status_code: int = 500
    error: str = "search_gate_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body

    def headers(self) -> Dict[str, str]:
        return {}


class InvalidInput(SearchGateError):
    """Query ausente ou malformada. Não toca em nenhum estado compartilhado."""
    status_code = 400
    error = "invalid_input"


class _WaitError(SearchGateError):
    """Rejeição com dica de espera (429)."""
    status_code = 429

    def __init__(self, message: str, wait_seconds: float):
        super().__init__(message)
        self.wait_seconds = max(0.0, wait_seconds)

    @property
    def retry_after_ms(self) -> int:
        return int(math.ceil(self.wait_seconds * 1000))

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["retry_after_ms"] = self.retry_after_ms
        return body

    def headers(self) -> Dict[str, str]:
        # Retry-After é em segundos inteiros; arredonda para cima
        return {"Retry-After": str(max(1, int(math.ceil(self.wait_seconds))))}


class AdmissionRejected(_WaitError):
    """Chamada cedo demais em relação ao espaçamento mínimo."""
    error = "admission_rejected"


class CircuitOpen(_WaitError):
    """Falhas consecutivas demais no eBay; chamadas suspensas."""
    error = "circuit_open"


class RetryableDownstreamError(SearchGateError):
    """Sinal de rate limit ou 5xx do eBay. Interno à política de retry."""
    status_code = 502
    error = "retryable_downstream_error"


class TransportError(RetryableDownstreamError):
    """Falha de rede ou timeout. Tratado como repetível."""
    error = "transport_error"


class TerminalDownstreamError(SearchGateError):
    """Rejeição não repetível do eBay (ex.: requisição malformada)."""
    status_code = 502
    error = "downstream_error"


class RetriesExhausted(SearchGateError):
    """Todas as tentativas falharam com erros repetíveis."""
    status_code = 502
    error = "retries_exhausted"


class MissingCredentials(SearchGateError):
    """Nenhum token do eBay configurado."""
    status_code = 500
    error = "missing_credentials"
