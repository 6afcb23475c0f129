"""
Fonte de tempo do gate.

Todo componente que mede intervalos ou espera recebe um Clock, para que os
testes possam avançar o tempo sem dormir de verdade.
"""

import asyncio
import time


class Clock:
    """Relógio monotônico com suspensão cooperativa."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


system_clock = Clock()
