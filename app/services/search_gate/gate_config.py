"""
Configuração do Search Gate.

Valores vêm de app/configs/search_gate.json (em milissegundos, como o
contrato da API eBay é documentado) e podem ser sobrescritos por variáveis
SEARCH_GATE_<CHAVE>. Internamente tudo é convertido para segundos.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.core.constants import SEARCH_GATE_CONFIG, SEARCH_GATE_ENV_PREFIX
from app.core.config_loader import (
    apply_env_overrides,
    get_section,
)

logger = logging.getLogger(__name__)

DEFAULTS_MS: Dict[str, Any] = {
    "min_spacing_ms": 5000,
    "base_delay_ms": 1000,
    "max_attempts": 3,
    "max_consecutive_failures": 3,
    "cache_ttl_ms": 300000,
    "cache_max_entries": 1000,
    "max_cooldown_ms": 60000,
    "recovery_timeout_ms": 60000,
    "attempt_timeout_ms": 15000,
    "retry_after_max_ms": 60000,
}


@dataclass(frozen=True)
class GateConfig:
    """Parâmetros do gate, em segundos."""
    min_spacing: float = 5.0
    base_delay: float = 1.0
    max_attempts: int = 3
    max_consecutive_failures: int = 3
    cache_ttl: float = 300.0
    cache_max_entries: int = 1000
    max_cooldown: float = 60.0
    recovery_timeout: float = 60.0
    attempt_timeout: Optional[float] = 15.0
    retry_after_max: float = 60.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts deve ser >= 1")
        if self.max_consecutive_failures < 1:
            raise ValueError("max_consecutive_failures deve ser >= 1")
        if self.min_spacing < 0 or self.base_delay < 0 or self.cache_ttl < 0:
            raise ValueError("intervalos não podem ser negativos")

    @classmethod
    def from_ms(cls, raw: Dict[str, Any]) -> "GateConfig":
        cfg = {**DEFAULTS_MS, **raw}
        attempt_timeout_ms = cfg["attempt_timeout_ms"]
        return cls(
            min_spacing=cfg["min_spacing_ms"] / 1000,
            base_delay=cfg["base_delay_ms"] / 1000,
            max_attempts=int(cfg["max_attempts"]),
            max_consecutive_failures=int(cfg["max_consecutive_failures"]),
            cache_ttl=cfg["cache_ttl_ms"] / 1000,
            cache_max_entries=int(cfg["cache_max_entries"]),
            max_cooldown=cfg["max_cooldown_ms"] / 1000,
            recovery_timeout=cfg["recovery_timeout_ms"] / 1000,
            attempt_timeout=attempt_timeout_ms / 1000 if attempt_timeout_ms else None,
            retry_after_max=cfg["retry_after_max_ms"] / 1000,
        )

    def as_ms(self) -> Dict[str, Any]:
        return {
            "min_spacing_ms": int(self.min_spacing * 1000),
            "base_delay_ms": int(self.base_delay * 1000),
            "max_attempts": self.max_attempts,
            "max_consecutive_failures": self.max_consecutive_failures,
            "cache_ttl_ms": int(self.cache_ttl * 1000),
            "cache_max_entries": self.cache_max_entries,
            "max_cooldown_ms": int(self.max_cooldown * 1000),
            "recovery_timeout_ms": int(self.recovery_timeout * 1000),
            "attempt_timeout_ms": int(self.attempt_timeout * 1000) if self.attempt_timeout else 0,
            "retry_after_max_ms": int(self.retry_after_max * 1000),
        }


def load_gate_config() -> GateConfig:
    """Lê o JSON do gate, aplica overrides de ambiente e valida."""
    raw = get_section(SEARCH_GATE_CONFIG, DEFAULTS_MS)
    raw = apply_env_overrides({**DEFAULTS_MS, **raw}, SEARCH_GATE_ENV_PREFIX)
    config = GateConfig.from_ms(raw)
    logger.info(
        f"🚦 SearchGate config: spacing={config.min_spacing}s, "
        f"base_delay={config.base_delay}s, attempts={config.max_attempts}, "
        f"max_failures={config.max_consecutive_failures}, ttl={config.cache_ttl}s"
    )
    return config
