"""
Modelos do Search Gate.

Estruturas imutáveis trocadas entre cache, gate de admissão, política de
retry e orquestrador. Nenhuma delas conhece o formato do payload do eBay:
o resultado de sucesso é tratado como um JSON opaco.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.constants import MAX_KEYWORD_LENGTH
from .errors import InvalidInput


@dataclass(frozen=True)
class SearchQuery:
    """Query normalizada: keyword + flag de filtro."""
    keyword: str
    filter_flag: bool = False

    @classmethod
    def normalize(cls, keyword: Optional[str], filter_flag: Any = False) -> "SearchQuery":
        """
        Normaliza a entrada do cliente.

        - remove espaços das pontas e colapsa espaços internos
        - keyword em minúsculas ("Charizard" e " charizard " são a mesma busca)
        - filter_flag precisa ser booleano de verdade

        Raises:
            InvalidInput: keyword ausente, vazia, longa demais ou flag inválida
        """
        if keyword is None or not isinstance(keyword, str):
            raise InvalidInput("keyword é obrigatório")

        normalized = " ".join(keyword.split()).lower()
        if not normalized:
            raise InvalidInput("keyword não pode ser vazio")
        if len(normalized) > MAX_KEYWORD_LENGTH:
            raise InvalidInput(f"keyword excede {MAX_KEYWORD_LENGTH} caracteres")
        if not isinstance(filter_flag, bool):
            raise InvalidInput("filter_flag deve ser booleano")

        return cls(keyword=normalized, filter_flag=filter_flag)

    @property
    def fingerprint(self) -> str:
        """Chave do cache e da deduplicação (sha256 da forma canônica)."""
        canonical = f"{self.keyword}|{int(self.filter_flag)}"
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    """Entrada do cache. Nunca é alterada, apenas substituída."""
    fingerprint: str
    payload: Any
    stored_at: float


class AttemptOutcome(Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass(frozen=True)
class OutboundAttempt:
    """Registro de uma tentativa de chamada ao eBay (vive só durante a requisição)."""
    attempt_number: int
    started_at: float
    outcome: AttemptOutcome
    detail: Optional[str] = None


@dataclass(frozen=True)
class RawResult:
    """
    Resultado bruto do colaborador de saída.

    ok=True carrega o payload; ok=False carrega o detalhe do erro e se ele
    pode ser repetido (rate limit, 5xx, timeout) ou não (4xx).
    """
    ok: bool
    payload: Any = None
    retryable: bool = False
    detail: Optional[str] = None
    retry_after: Optional[float] = None

    @classmethod
    def success(cls, payload: Any) -> "RawResult":
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(
        cls,
        detail: str,
        retryable: bool,
        retry_after: Optional[float] = None
    ) -> "RawResult":
        return cls(ok=False, retryable=retryable, detail=detail, retry_after=retry_after)


@dataclass
class RetryOutcome:
    """Resultado final da política de retry para uma requisição."""
    ok: bool
    payload: Any = None
    detail: Optional[str] = None
    retryable_exhausted: bool = False
    retry_after: Optional[float] = None
    attempts: List[OutboundAttempt] = field(default_factory=list)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


@dataclass
class ProxyResponse:
    """Resposta do orquestrador para a camada HTTP."""
    status: int
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)
    cached: bool = False
