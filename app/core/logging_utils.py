"""
Configuração de logging da aplicação.

Por padrão emite uma linha JSON por registro (fácil de indexar em produção).
Use LOG_FORMAT=text para saída legível no terminal durante desenvolvimento.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from app.core.config import settings

# Atributos padrão do LogRecord que não devem ir para o JSON como "extra"
_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "taskName",
}

_configured = False


class JsonFormatter(logging.Formatter):
    """Formata cada registro como um objeto JSON em uma única linha."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = None, fmt: str = None) -> None:
    """
    Configura o root logger uma única vez.

    Chamadas repetidas (reload do uvicorn, testes) não duplicam handlers.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    if (fmt or settings.LOG_FORMAT).lower() == "text":
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or settings.LOG_LEVEL).upper())

    # httpx loga cada requisição em INFO; ruído demais para o proxy
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _configured = True
