"""
Failure Tracker - Controle de falhas consecutivas da API eBay.

Um único circuito global (a cota do eBay é por aplicação, não por keyword).
Implementa o padrão Circuit Breaker com estados CLOSED, OPEN e HALF_OPEN e
um cooldown extra que cresce a cada falha e soma no espaçamento do gate.

Não tem lock próprio: o SearchProxy serializa todas as chamadas sob o lock
de estado compartilhado com o AdmissionGate.
"""

import logging
from enum import Enum
from dataclasses import dataclass

from app.core.clock import Clock, system_clock

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Estados possíveis do circuito."""
    CLOSED = "closed"        # Normal - permite requisições
    OPEN = "open"            # Aberto - bloqueia requisições
    HALF_OPEN = "half_open"  # Semi-aberto - permite uma sonda


@dataclass
class FailureState:
    """Estado compartilhado de falhas."""
    consecutive_failures: int = 0
    extra_cooldown: float = 0.0
    last_failure_at: float = 0.0
    state: CircuitState = CircuitState.CLOSED
    probe_in_flight: bool = False


class FailureTracker:
    """
    Rastreador de falhas consecutivas com cooldown escalonado.

    - Cada falha soma `base_delay` ao cooldown extra (teto em `max_cooldown`)
    - Com `max_failures` falhas seguidas o circuito abre e o proxy passa a
      rejeitar com CircuitOpen sem chamar o eBay
    - Após `recovery_timeout` desde a última falha, uma única sonda passa
      (HALF_OPEN); falha reabre, sucesso fecha
    - Qualquer sucesso zera contador e cooldown de uma vez
    """

    def __init__(
        self,
        max_failures: int = 3,
        base_delay: float = 1.0,
        max_cooldown: float = 60.0,
        recovery_timeout: float = 60.0,
        clock: Clock = system_clock
    ):
        """
        Args:
            max_failures: Falhas consecutivas para abrir o circuito
            base_delay: Incremento do cooldown por falha (segundos)
            max_cooldown: Teto do cooldown extra (segundos)
            recovery_timeout: Tempo desde a última falha até liberar uma sonda
            clock: Fonte de tempo monotônica
        """
        self._max_failures = max_failures
        self._base_delay = base_delay
        self._max_cooldown = max_cooldown
        self._recovery_timeout = recovery_timeout
        self._clock = clock

        self._state = FailureState()

        # Métricas
        self._total_blocked = 0
        self._total_opened = 0

        logger.info(
            f"FailureTracker: max_failures={max_failures}, base_delay={base_delay}s, "
            f"max_cooldown={max_cooldown}s, recovery={recovery_timeout}s"
        )

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def state(self) -> CircuitState:
        self._update_state()
        return self._state.state

    def _update_state(self):
        """OPEN -> HALF_OPEN quando a janela de recuperação passa."""
        st = self._state
        if st.state != CircuitState.OPEN:
            return
        if self._clock.now() - st.last_failure_at >= self._recovery_timeout:
            st.state = CircuitState.HALF_OPEN
            st.probe_in_flight = False
            logger.info(
                f"🔄 Circuit HALF_OPEN para eBay "
                f"(recuperação após {self._recovery_timeout}s)"
            )

    def is_blocked(self) -> bool:
        """
        True enquanto o circuito estiver aberto.

        Em HALF_OPEN só bloqueia se já houver uma sonda em andamento.
        """
        self._update_state()
        st = self._state

        if st.state == CircuitState.OPEN:
            self._total_blocked += 1
            return True

        if st.state == CircuitState.HALF_OPEN and st.probe_in_flight:
            self._total_blocked += 1
            return True

        return False

    def mark_dispatch(self):
        """Chamado pelo proxy ao despachar; em HALF_OPEN marca a sonda."""
        if self._state.state == CircuitState.HALF_OPEN:
            self._state.probe_in_flight = True
            logger.info("🔌 Circuit HALF_OPEN: sonda despachada")

    def current_cooldown(self) -> float:
        """Cooldown extra (segundos) somado ao espaçamento mínimo do gate."""
        return self._state.extra_cooldown

    def blocked_for(self) -> float:
        """Dica de espera (segundos) para o cliente enquanto bloqueado."""
        st = self._state
        if st.state == CircuitState.HALF_OPEN:
            return max(self._base_delay, st.extra_cooldown)
        remaining = self._recovery_timeout - (self._clock.now() - st.last_failure_at)
        return max(0.0, remaining)

    def on_failure(self):
        """Registra uma falha terminal de requisição."""
        st = self._state
        st.consecutive_failures += 1
        st.extra_cooldown = min(st.extra_cooldown + self._base_delay, self._max_cooldown)
        st.last_failure_at = self._clock.now()

        if st.state == CircuitState.HALF_OPEN:
            st.state = CircuitState.OPEN
            st.probe_in_flight = False
            logger.warning("🔌 Circuit REABERTO para eBay (falha na sonda HALF_OPEN)")

        elif st.state == CircuitState.CLOSED and st.consecutive_failures >= self._max_failures:
            st.state = CircuitState.OPEN
            self._total_opened += 1
            logger.warning(
                f"🔌 Circuit OPEN para eBay "
                f"({st.consecutive_failures} falhas consecutivas, "
                f"cooldown extra={st.extra_cooldown:.1f}s)"
            )
        else:
            logger.warning(
                f"⚠️ Falha eBay registrada: {st.consecutive_failures}/{self._max_failures} "
                f"(cooldown extra={st.extra_cooldown:.1f}s)"
            )

    def on_success(self):
        """Registra sucesso: zera contador e cooldown de uma vez."""
        previous = self._state
        self._state = FailureState()

        if previous.state != CircuitState.CLOSED:
            logger.info("✅ Circuit CLOSED para eBay (recuperado)")

    def reset(self):
        """Volta ao estado inicial (útil para testes e operação manual)."""
        self._state = FailureState()
        logger.info("🔄 FailureTracker resetado")

    def get_status(self) -> dict:
        """Retorna status do rastreador."""
        self._update_state()
        st = self._state
        return {
            "state": st.state.value,
            "consecutive_failures": st.consecutive_failures,
            "extra_cooldown_s": round(st.extra_cooldown, 3),
            "probe_in_flight": st.probe_in_flight,
            "total_blocked": self._total_blocked,
            "total_opened": self._total_opened,
            "config": {
                "max_failures": self._max_failures,
                "base_delay": self._base_delay,
                "max_cooldown": self._max_cooldown,
                "recovery_timeout": self._recovery_timeout
            }
        }
