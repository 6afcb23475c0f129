"""
Schemas Pydantic para o endpoint de busca v1.
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class SearchRequest(BaseModel):
    """
    Request schema para busca no eBay.

    Campos:
        keyword: Termo de busca - obrigatório
        filter_flag: Se True, apenas anúncios "Compre já" - opcional
    """
    # limite de tamanho aplicado depois da normalização, igual para GET e POST
    keyword: str = Field(..., description="Termo de busca", min_length=1)
    filter_flag: bool = Field(False, description="Restringe a anúncios de preço fixo (Compre já)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "keyword": "Charizard",
                "filter_flag": False
            }
        }
    )


class GateErrorResponse(BaseModel):
    """
    Corpo de erro devolvido pelo gate.

    Campos:
        error: Código do erro (admission_rejected, circuit_open, downstream_error, ...)
        message: Mensagem legível
        details: Detalhe do eBay para diagnóstico (502)
        retry_after_ms: Dica de espera (429)
    """
    error: str = Field(..., description="Código do erro")
    message: str = Field(..., description="Mensagem legível")
    details: Optional[str] = Field(None, description="Detalhe do eBay para diagnóstico")
    retry_after_ms: Optional[int] = Field(None, description="Tempo sugerido de espera em ms (429)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "admission_rejected",
                "message": "Chamada cedo demais para a cota do eBay",
                "retry_after_ms": 3000
            }
        }
    )
