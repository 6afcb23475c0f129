"""
Admission Gate - Espaçamento mínimo entre chamadas ao eBay.

A API do eBay exige um intervalo mínimo entre requisições da mesma
aplicação. Diferente de um token bucket, aqui não há burst: cada despacho
precisa estar a pelo menos `min_spacing + cooldown` do anterior.

Um despacho admitido segura o gate até terminar, incluindo os retries: só
um despacho fala com o eBay por vez, e o próximo é medido a partir da
última tentativa real.

O gate nunca enfileira. Quem chega cedo demais recebe o tempo restante e o
proxy responde 429 imediatamente, mantendo a latência previsível.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.core.clock import Clock, system_clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admission:
    """Resultado de uma tentativa de admissão."""
    admitted: bool
    wait_seconds: float = 0.0


@dataclass
class AdmissionMetrics:
    """Métricas do gate."""
    total_admitted: int = 0
    total_rejected: int = 0
    total_rejected_busy: int = 0
    total_retry_stamps: int = 0


class AdmissionGate:
    """
    Gate global de admissão.

    - `last_call_at` é carimbado no INÍCIO da chamada, não no fim, para que
      chamadas lentas sobrepostas não burlem o espaçamento
    - Retries re-carimbam via `mark_dispatch()`, empurrando a próxima
      admissão para depois da última tentativa real
    - Enquanto um despacho admitido não chama `release()`, nenhum outro é
      admitido, mesmo que o espaçamento já tenha passado
    - `defer()` empurra a próxima admissão para frente (backoff em curso,
      Retry-After do eBay)

    Não tem lock próprio: o SearchProxy serializa `try_admit` junto com o
    FailureTracker sob o mesmo lock de estado.
    """

    def __init__(self, min_spacing: float = 5.0, clock: Clock = system_clock):
        """
        Args:
            min_spacing: Intervalo mínimo entre despachos (segundos)
            clock: Fonte de tempo monotônica
        """
        self.min_spacing = min_spacing
        self._clock = clock
        self._last_call_at: Optional[float] = None
        self._not_before: Optional[float] = None
        self._active = 0
        self._metrics = AdmissionMetrics()

        logger.info(f"🚦 AdmissionGate: min_spacing={min_spacing}s")

    @property
    def last_call_at(self) -> Optional[float]:
        return self._last_call_at

    @property
    def busy(self) -> bool:
        """True enquanto um despacho admitido ainda não terminou."""
        return self._active > 0

    def remaining(self, cooldown: float = 0.0) -> float:
        """Segundos até a próxima admissão possível pelo relógio (0 se já pode)."""
        now = self._clock.now()
        wait = 0.0
        if self._last_call_at is not None:
            wait = self.min_spacing + cooldown - (now - self._last_call_at)
        if self._not_before is not None:
            wait = max(wait, self._not_before - now)
        return max(0.0, wait)

    def try_admit(self, cooldown: float = 0.0) -> Admission:
        """
        Tenta admitir um despacho agora.

        Args:
            cooldown: Cooldown extra do FailureTracker (segundos)

        Returns:
            Admission(admitted=True), carimba last_call_at e segura o gate até
            `release()`, ou Admission(admitted=False, wait_seconds=restante)
        """
        wait = self.remaining(cooldown)
        if self._active:
            # o despacho em curso ainda pode fazer outra tentativa
            self._metrics.total_rejected += 1
            self._metrics.total_rejected_busy += 1
            wait = max(wait, self.min_spacing + cooldown)
            logger.debug(f"[AdmissionGate] Rejeitado: despacho em curso, aguardar {wait:.3f}s")
            return Admission(admitted=False, wait_seconds=wait)

        if wait > 0:
            self._metrics.total_rejected += 1
            logger.debug(f"[AdmissionGate] Rejeitado: aguardar {wait:.3f}s")
            return Admission(admitted=False, wait_seconds=wait)

        self._last_call_at = self._clock.now()
        self._active += 1
        self._metrics.total_admitted += 1
        return Admission(admitted=True)

    def mark_dispatch(self):
        """Re-carimba last_call_at no início de uma nova tentativa (retry)."""
        self._last_call_at = self._clock.now()
        self._metrics.total_retry_stamps += 1

    def defer(self, seconds: float):
        """Nenhuma admissão antes de `now + seconds`."""
        until = self._clock.now() + seconds
        if self._not_before is None or until > self._not_before:
            self._not_before = until

    def release(self):
        """Fim de um despacho admitido (sucesso, falha ou erro)."""
        if self._active:
            self._active -= 1

    def get_status(self, cooldown: float = 0.0) -> dict:
        """Retorna status e métricas do gate."""
        return {
            "min_spacing_s": self.min_spacing,
            "cooldown_s": round(cooldown, 3),
            "wait_s": round(self.remaining(cooldown), 3),
            "busy": self.busy,
            "metrics": {
                "total_admitted": self._metrics.total_admitted,
                "total_rejected": self._metrics.total_rejected,
                "total_rejected_busy": self._metrics.total_rejected_busy,
                "total_retry_stamps": self._metrics.total_retry_stamps
            }
        }

    def reset(self):
        """Esquece o último despacho."""
        self._last_call_at = None
        self._not_before = None
        self._active = 0
        self._metrics = AdmissionMetrics()
        logger.info("AdmissionGate: estado resetado")
