"""
Router principal para API v1.
Agrupa todos os endpoints v1 em um único router.
"""
from fastapi import APIRouter
from app.api.v1 import search, limits

# Criar router principal
router = APIRouter()

# Endpoint raiz e documentação
@router.get("/")
async def v1_root():
    """Endpoint raiz da API - lista endpoints disponíveis"""
    return {
        "version": "v1",
        "status": "ok",
        "endpoints": {
            "search": "GET /api/search?keyword=...&filter_flag=false",
            "search_post": "POST /api/search",
            "status": "GET /api/status",
            "check_limits": "GET /api/check-limits"
        },
        "docs": "/docs"
    }

# Incluir todos os routers v1
router.include_router(search.router, tags=["v1-search"])
router.include_router(limits.router, tags=["v1-limits"])

__all__ = ["router"]
