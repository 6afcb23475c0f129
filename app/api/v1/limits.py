"""
Endpoint de cota v1 - Consulta os limites de uso da aplicação no eBay.
Não passa pelo gate nem pelo cache: é diagnóstico do operador.
"""
import logging
from fastapi import APIRouter, HTTPException
from app.core.config import settings
from app.services.ebay_client import ebay_client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/check-limits")
async def check_limits() -> dict:
    """
    Retorna o relatório de rate limit da Analytics API do eBay.

    Raises:
        HTTPException: 500 se não houver credencial ou se o eBay falhar
    """
    if not settings.EBAY_ACCESS_TOKEN:
        raise HTTPException(status_code=500, detail="Missing eBay credentials")

    result = await ebay_client.check_rate_limits(settings.EBAY_ACCESS_TOKEN)
    if not result.ok:
        raise HTTPException(status_code=500, detail=f"Limits fetch failed: {result.detail}")

    return result.payload
