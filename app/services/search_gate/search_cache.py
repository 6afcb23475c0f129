"""
Search Cache - Cache de resultados de busca no eBay.

Evita chamadas repetidas à API para queries idênticas dentro do TTL,
reduzindo o consumo da cota diária.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from app.core.clock import Clock, system_clock
from .models import CacheEntry

logger = logging.getLogger(__name__)


class SearchCache:
    """
    Cache TTL para resultados de busca, indexado pelo fingerprint da query.

    Features:
    - Expiração preguiçosa: entrada vencida vira miss e é removida na leitura
    - Limite máximo de entradas (remove a gravação mais antiga)
    - Métricas de hit/miss
    - Entradas imutáveis: uma leitura nunca vê uma gravação pela metade
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        clock: Clock = system_clock
    ):
        """
        Args:
            ttl_seconds: Tempo de vida das entradas em segundos
            max_entries: Máximo de entradas no cache
            clock: Fonte de tempo monotônica
        """
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock

        # dict preserva ordem de inserção: o primeiro item é a gravação mais antiga
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

        # Métricas
        self._hits = 0
        self._misses = 0
        self._expired = 0
        self._evictions = 0

        logger.info(f"SearchCache: max={max_entries}, ttl={ttl_seconds}s")

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self._ttl_seconds

    async def lookup(self, fingerprint: str) -> Optional[CacheEntry]:
        """
        Busca uma entrada válida.

        Returns:
            CacheEntry ou None se ausente/expirada
        """
        async with self._lock:
            entry = self._cache.get(fingerprint)

            if entry is None:
                self._misses += 1
                return None

            if self._is_expired(entry, self._clock.now()):
                del self._cache[fingerprint]
                self._expired += 1
                self._misses += 1
                logger.debug(f"[Cache] EXPIRED: {fingerprint[:12]}")
                return None

            self._hits += 1
            logger.debug(f"[Cache] HIT: {fingerprint[:12]}")
            return entry

    async def store(self, fingerprint: str, payload: Any) -> CacheEntry:
        """Grava (ou substitui) o resultado de um fingerprint com stored_at=agora."""
        entry = CacheEntry(
            fingerprint=fingerprint,
            payload=payload,
            stored_at=self._clock.now()
        )

        async with self._lock:
            # Remove antes de inserir para que a regravação vá para o fim da ordem
            self._cache.pop(fingerprint, None)

            while len(self._cache) >= self._max_entries:
                oldest = next(iter(self._cache))
                del self._cache[oldest]
                self._evictions += 1
                logger.debug(f"[Cache] Eviction: {oldest[:12]}")

            self._cache[fingerprint] = entry

        logger.debug(f"[Cache] SET: {fingerprint[:12]}")
        return entry

    async def purge_expired(self) -> int:
        """Remove todas as entradas vencidas. Retorna quantas foram removidas."""
        async with self._lock:
            now = self._clock.now()
            expired_keys = [k for k, e in self._cache.items() if self._is_expired(e, now)]
            for key in expired_keys:
                del self._cache[key]
            self._expired += len(expired_keys)

        if expired_keys:
            logger.debug(f"[Cache] Cleanup: {len(expired_keys)} entradas expiradas removidas")
        return len(expired_keys)

    async def clear(self):
        """Limpa todo o cache."""
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.info(f"[Cache] Cleared: {count} entradas removidas")

    def __len__(self) -> int:
        return len(self._cache)

    def get_status(self) -> dict:
        """Retorna status e métricas do cache."""
        total_requests = self._hits + self._misses
        hit_rate = self._hits / total_requests if total_requests > 0 else 0

        return {
            "entries": len(self._cache),
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "expired": self._expired,
            "hit_rate": f"{hit_rate:.1%}",
            "evictions": self._evictions,
            "config": {
                "ttl_seconds": self._ttl_seconds
            }
        }

    def reset_metrics(self):
        """Reseta métricas."""
        self._hits = 0
        self._misses = 0
        self._expired = 0
        self._evictions = 0
        logger.info("SearchCache: Métricas resetadas")
