"""
Endpoint de busca v1 - Busca no eBay através do Search Gate.
Responde de forma síncrona: 200 com o payload do eBay, ou erro estruturado.
"""
import logging
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from app.schemas.v1.search import SearchRequest, GateErrorResponse
from app.services.search_gate import ProxyResponse, SearchProxy, get_search_proxy

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": GateErrorResponse, "description": "Query inválida"},
    429: {"model": GateErrorResponse, "description": "Espaçamento mínimo ou circuito aberto"},
    500: {"model": GateErrorResponse, "description": "Credenciais ausentes ou erro interno"},
    502: {"model": GateErrorResponse, "description": "eBay rejeitou ou ficou indisponível"},
}


def _to_json(response: ProxyResponse) -> JSONResponse:
    return JSONResponse(status_code=response.status, content=response.body, headers=response.headers)


@router.get("/search", responses=_ERROR_RESPONSES)
async def buscar_get(
    keyword: str = Query(..., description="Termo de busca"),
    filter_flag: bool = Query(False, description="Apenas anúncios de preço fixo"),
    proxy: SearchProxy = Depends(get_search_proxy)
) -> JSONResponse:
    """
    Busca itens no eBay respeitando a cota da API.

    Args:
        keyword: Termo de busca
        filter_flag: Restringe a anúncios "Compre já"

    Returns:
        Payload do eBay (200) ou erro estruturado (400/429/500/502)
    """
    logger.info(f"📥 Busca recebida: keyword='{keyword[:50]}', filter={filter_flag}")
    return _to_json(await proxy.handle(keyword, filter_flag))


@router.post("/search", responses=_ERROR_RESPONSES)
async def buscar_post(
    request: SearchRequest,
    proxy: SearchProxy = Depends(get_search_proxy)
) -> JSONResponse:
    """Mesma busca do GET, com a query no corpo JSON."""
    logger.info(f"📥 Busca recebida: keyword='{request.keyword[:50]}', filter={request.filter_flag}")
    return _to_json(await proxy.handle(request.keyword, request.filter_flag))


@router.get("/status")
async def gate_status(proxy: SearchProxy = Depends(get_search_proxy)) -> dict:
    """Status do gate: cache, circuito, espaçamento e contadores."""
    return proxy.get_status()
