"""
eBay Browse Client - Chamada de saída para a API de busca do eBay.

Traduz respostas HTTP em RawResult para o Search Gate:
- 200: sucesso, JSON devolvido intacto (o gate não interpreta o payload)
- 429 / 5xx: falha repetível (com Retry-After quando o eBay informa)
- demais 4xx: falha terminal com o corpo da resposta para diagnóstico
- timeout / erro de rede: falha repetível

O token OAuth chega pronto (credentials); a emissão fica fora deste serviço.
"""

import asyncio
import datetime as dt_module
import logging
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.constants import (
    EBAY_FIXED_PRICE_FILTER,
    EBAY_RATE_LIMIT_PATH,
    EBAY_SEARCH_PATH,
)
from app.services.search_gate.models import RawResult

logger = logging.getLogger(__name__)

# Corpo de erro do eBay pode ser grande; guardar só o início para logs/diagnóstico
_MAX_DETAIL_CHARS = 500


def _parse_retry_after(header_value: Optional[str], max_seconds: float = 60.0) -> Optional[float]:
    """
    Parseia o header Retry-After conforme RFC 7231.

    Pode ser:
    - Número em segundos (ex: "120")
    - HTTP-date (ex: "Wed, 21 Oct 2015 07:28:00 GMT")

    Returns:
        Segundos a esperar, ou None se inválido/não presente.
        Limitado a max_seconds.
    """
    if not header_value or not header_value.strip():
        return None
    val = header_value.strip()
    try:
        seconds = float(val)
        return min(seconds, max_seconds) if seconds > 0 else None
    except ValueError:
        pass
    try:
        retry_dt = parsedate_to_datetime(val)
        now = dt_module.datetime.now(dt_module.timezone.utc)
        if retry_dt.tzinfo is None:
            retry_dt = retry_dt.replace(tzinfo=dt_module.timezone.utc)
        delta = (retry_dt - now).total_seconds()
        return min(delta, max_seconds) if delta > 0 else None
    except (ValueError, TypeError):
        return None


def _to_raw_result(response: httpx.Response) -> RawResult:
    """Classifica uma resposta HTTP do eBay."""
    status = response.status_code

    if status == 429:
        retry_after = _parse_retry_after(response.headers.get("Retry-After"))
        return RawResult.failure("Rate limit (429)", retryable=True, retry_after=retry_after)

    if status >= 500:
        return RawResult.failure(f"Server error ({status})", retryable=True)

    if status >= 400:
        return RawResult.failure(
            f"Client error ({status}): {response.text[:_MAX_DETAIL_CHARS]}",
            retryable=False
        )

    try:
        return RawResult.success(response.json())
    except ValueError:
        return RawResult.failure(f"Resposta não-JSON do eBay ({status})", retryable=False)


class EbayBrowseClient:
    """
    Cliente da Browse API com connection pooling.

    O cliente httpx é criado sob demanda e compartilhado por todas as
    requisições; `close()` no shutdown da aplicação.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        marketplace_id: Optional[str] = None,
        result_limit: Optional[int] = None,
        connect_timeout: Optional[float] = None,
        request_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Raiz da API (default: settings.EBAY_API_BASE)
            marketplace_id: Header X-EBAY-C-MARKETPLACE-ID
            result_limit: Parâmetro `limit` da busca
            connect_timeout: Timeout de conexão em segundos
            request_timeout: Timeout de leitura em segundos
            transport: Transporte httpx alternativo (testes)
        """
        self._base_url = (base_url or settings.EBAY_API_BASE).rstrip("/")
        self._marketplace_id = marketplace_id or settings.EBAY_MARKETPLACE_ID
        self._result_limit = result_limit or settings.EBAY_RESULT_LIMIT
        self._connect_timeout = connect_timeout if connect_timeout is not None else settings.EBAY_CONNECT_TIMEOUT
        self._request_timeout = request_timeout if request_timeout is not None else settings.EBAY_REQUEST_TIMEOUT
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Retorna cliente HTTP compartilhado."""
        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=httpx.Timeout(
                        connect=self._connect_timeout,
                        read=self._request_timeout,
                        write=self._request_timeout,
                        pool=self._request_timeout
                    ),
                    limits=httpx.Limits(
                        max_keepalive_connections=10,
                        max_connections=20,
                        keepalive_expiry=30.0
                    ),
                    http2=self._transport is None,
                    transport=self._transport
                )
                logger.info(f"🌐 eBay: Cliente HTTP criado ({self._base_url})")
        return self._client

    async def close(self):
        """Fecha o cliente HTTP."""
        async with self._client_lock:
            if self._client and not self._client.is_closed:
                await self._client.aclose()
                self._client = None
                logger.info("🌐 eBay: Cliente HTTP fechado")

    def _headers(self, credentials: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials}",
            "X-EBAY-C-MARKETPLACE-ID": self._marketplace_id,
            "Accept": "application/json",
        }

    def _search_params(self, keyword: str, filter_flag: bool) -> Dict[str, Any]:
        params: Dict[str, Any] = {"q": keyword, "limit": self._result_limit}
        if filter_flag:
            params["filter"] = EBAY_FIXED_PRICE_FILTER
        return params

    async def _get(self, path: str, credentials: str, params: Optional[Dict[str, Any]] = None) -> RawResult:
        client = await self._get_client()
        try:
            response = await client.get(path, params=params, headers=self._headers(credentials))
        except httpx.TimeoutException:
            return RawResult.failure(f"timeout após {self._request_timeout}s", retryable=True)
        except httpx.TransportError as e:
            return RawResult.failure(str(e) or type(e).__name__, retryable=True)
        return _to_raw_result(response)

    async def search(self, keyword: str, filter_flag: bool, credentials: str) -> RawResult:
        """
        Busca itens no eBay (uma tentativa; retry é papel do gate).

        Args:
            keyword: Termo já normalizado
            filter_flag: Se True, apenas anúncios "Compre já" (FIXED_PRICE)
            credentials: Token OAuth de aplicação
        """
        result = await self._get(EBAY_SEARCH_PATH, credentials, self._search_params(keyword, filter_flag))
        if not result.ok:
            logger.warning(f"⚠️ eBay search '{keyword[:50]}': {result.detail}")
        return result

    async def check_rate_limits(self, credentials: str) -> RawResult:
        """Consulta o relatório de cota da própria aplicação no eBay (Analytics API)."""
        result = await self._get(EBAY_RATE_LIMIT_PATH, credentials)
        if not result.ok:
            logger.error(f"❌ eBay rate_limit check falhou: {result.detail}")
        return result


# Instância singleton
ebay_client = EbayBrowseClient()
