import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from app.api.v1.router import router as v1_router
from app.core.constants import SERVICE_NAME, VERSION
from app.core.logging_utils import setup_logging
from app.services.ebay_client import ebay_client
from app.services.search_gate import get_search_proxy

# Configurar Logging (JSON Structured)
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=SERVICE_NAME, version=VERSION)


@app.on_event("startup")
async def startup_event():
    """Executado quando a aplicação inicia"""
    # Cria o gate já no startup para que config inválida falhe cedo
    get_search_proxy()
    logger.info("🚀 Aplicação inicializada com sucesso")


@app.on_event("shutdown")
async def shutdown_event():
    """Fecha o pool de conexões com o eBay"""
    await ebay_client.close()
    logger.info("👋 Aplicação finalizada")

# --- Global Exception Handlers ---

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global Error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "error": str(exc)}
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "detail": exc.detail}
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Query malformada é 400, no mesmo formato dos erros do gate
    return JSONResponse(
        status_code=400,
        content={
            "error": "invalid_input",
            "message": "Parâmetros de busca inválidos",
            "details": [
                {"loc": list(err.get("loc", [])), "msg": err.get("msg", "")}
                for err in exc.errors()
            ]
        }
    )

app.include_router(v1_router, prefix="/api")


@app.get("/")
async def root():
    return {"status": "ok", "service": SERVICE_NAME, "version": VERSION}
