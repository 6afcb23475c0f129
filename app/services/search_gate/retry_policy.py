"""
Retry Policy - Repetição com backoff exponencial para chamadas ao eBay.

Classifica cada falha:
- repetível: sinal de rate limit do eBay, 5xx, erro de rede ou timeout
- terminal: qualquer outra rejeição (ex.: 400 por query malformada)

Falhas terminais abortam na hora. Entre tentativas repetíveis a espera é
sempre `base_delay * 2^(n-1)` após a tentativa n (1x, 2x, 4x...). Um
Retry-After do eBay não altera esse cronograma: ele é repassado a quem
chamou (`on_backoff` e `RetryOutcome.retry_after`), que pode usá-lo para
adiar as próximas requisições. A espera é um `await` no relógio, então
outras requisições continuam andando.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from app.core.clock import Clock, system_clock
from .errors import TransportError
from .models import AttemptOutcome, OutboundAttempt, RawResult, RetryOutcome

logger = logging.getLogger(__name__)

OutboundCall = Callable[[], Awaitable[RawResult]]


class _RetryableAttempt(Exception):
    """Falha repetível de uma tentativa; só circula dentro do tenacity."""

    def __init__(self, detail: str, retry_after: Optional[float] = None):
        super().__init__(detail)
        self.detail = detail
        self.retry_after = retry_after


class RetryPolicy:
    """
    Executa uma chamada de saída com até `max_attempts` tentativas.

    O pior caso de latência é limitado por
    `max_attempts * attempt_timeout + soma dos backoffs`.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        attempt_timeout: Optional[float] = 15.0,
        retry_after_max: float = 60.0,
        clock: Clock = system_clock
    ):
        """
        Args:
            max_attempts: Máximo de tentativas (inclui a primeira)
            base_delay: Delay base do backoff (segundos)
            attempt_timeout: Limite de cada tentativa; None desativa
            retry_after_max: Teto para Retry-After informado pelo eBay
            clock: Fonte de tempo e suspensão
        """
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._attempt_timeout = attempt_timeout
        self._retry_after_max = retry_after_max
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def delay_for(self, attempt: int) -> float:
        """Backoff aplicado depois da tentativa `attempt` (1-based) falhar."""
        return self._base_delay * (2 ** (attempt - 1))

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)

    def _capped_retry_after(self, exc: BaseException) -> Optional[float]:
        retry_after = getattr(exc, "retry_after", None)
        if retry_after is None:
            return None
        return min(retry_after, self._retry_after_max)

    def _before_sleep(
        self,
        label: str,
        on_backoff: Optional[Callable[[float, Optional[float]], None]]
    ) -> Callable[[RetryCallState], None]:
        def log_retry(retry_state: RetryCallState):
            exc = retry_state.outcome.exception()
            delay = retry_state.next_action.sleep
            logger.warning(
                f"🔄 eBay retry {retry_state.attempt_number + 1}/{self._max_attempts} "
                f"após {delay:.1f}s ({label}, motivo={exc})"
            )
            if on_backoff is not None:
                on_backoff(delay, self._capped_retry_after(exc))
        return log_retry

    async def _invoke(self, call: OutboundCall) -> RawResult:
        if self._attempt_timeout:
            return await asyncio.wait_for(call(), timeout=self._attempt_timeout)
        return await call()

    async def _attempt(
        self,
        call: OutboundCall,
        attempt: int,
        attempts: List[OutboundAttempt],
        label: str
    ) -> RawResult:
        """Uma tentativa. Levanta _RetryableAttempt para o tenacity repetir."""
        started_at = self._clock.now()
        try:
            result = await self._invoke(call)
        except asyncio.TimeoutError:
            detail = f"timeout após {self._attempt_timeout}s"
            attempts.append(OutboundAttempt(attempt, started_at, AttemptOutcome.RETRYABLE_FAILURE, detail))
            logger.warning(f"⚠️ eBay timeout, tentativa {attempt}/{self._max_attempts} ({label})")
            raise _RetryableAttempt(detail)
        except (TransportError, httpx.TransportError) as e:
            detail = str(e) or type(e).__name__
            attempts.append(OutboundAttempt(attempt, started_at, AttemptOutcome.RETRYABLE_FAILURE, detail))
            logger.warning(
                f"⚠️ eBay {type(e).__name__}: {detail}, "
                f"tentativa {attempt}/{self._max_attempts} ({label})"
            )
            raise _RetryableAttempt(detail)

        if result.ok:
            attempts.append(OutboundAttempt(attempt, started_at, AttemptOutcome.SUCCESS))
            return result

        if not result.retryable:
            attempts.append(OutboundAttempt(attempt, started_at, AttemptOutcome.TERMINAL_FAILURE, result.detail))
            logger.error(f"❌ eBay erro terminal na tentativa {attempt}: {result.detail} ({label})")
            return result

        attempts.append(OutboundAttempt(attempt, started_at, AttemptOutcome.RETRYABLE_FAILURE, result.detail))
        logger.warning(
            f"⚠️ eBay falha repetível: {result.detail}, "
            f"tentativa {attempt}/{self._max_attempts} ({label})"
        )
        raise _RetryableAttempt(result.detail or "falha repetível", result.retry_after)

    async def execute(
        self,
        call: OutboundCall,
        on_attempt: Optional[Callable[[int], None]] = None,
        label: str = "",
        on_backoff: Optional[Callable[[float, Optional[float]], None]] = None
    ) -> RetryOutcome:
        """
        Executa `call` com retry.

        Args:
            call: Corrotina sem argumentos que retorna RawResult
            on_attempt: Chamado com o número da tentativa logo antes de cada uma
            label: Identificação curta para logs
            on_backoff: Chamado antes de cada espera com (delay, retry_after),
                retry_after já limitado a `retry_after_max` ou None

        Returns:
            RetryOutcome com ok=True e payload, ou ok=False com o último detalhe.
            Exceções inesperadas de `call` não são repetidas e propagam.
        """
        attempts: List[OutboundAttempt] = []
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(_RetryableAttempt),
            sleep=self._clock.sleep,
            before_sleep=self._before_sleep(label, on_backoff),
            reraise=True
        )

        result: Optional[RawResult] = None
        try:
            async for attempt in retrying:
                with attempt:
                    number = attempt.retry_state.attempt_number
                    if on_attempt is not None:
                        on_attempt(number)
                    result = await self._attempt(call, number, attempts, label)
        except _RetryableAttempt as e:
            logger.error(
                f"❌ eBay falhou após {self._max_attempts} tentativas: {e.detail} ({label})"
            )
            return RetryOutcome(
                ok=False,
                detail=e.detail,
                retryable_exhausted=True,
                retry_after=self._capped_retry_after(e),
                attempts=attempts
            )

        if result.ok:
            return RetryOutcome(ok=True, payload=result.payload, attempts=attempts)
        return RetryOutcome(ok=False, detail=result.detail, attempts=attempts)
