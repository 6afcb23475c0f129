import os
from dotenv import load_dotenv

# Carregar variáveis do arquivo .env
load_dotenv()

class Settings:
    # Credencial do eBay (token OAuth já emitido; a aquisição fica fora deste serviço)
    EBAY_ACCESS_TOKEN: str = os.getenv("EBAY_ACCESS_TOKEN", "")
    EBAY_API_BASE: str = os.getenv("EBAY_API_BASE", "https://api.ebay.com")
    EBAY_MARKETPLACE_ID: str = os.getenv("EBAY_MARKETPLACE_ID", "EBAY_US")
    EBAY_RESULT_LIMIT: int = int(os.getenv("EBAY_RESULT_LIMIT", "50"))

    # Timeouts do cliente HTTP de saída (segundos)
    EBAY_CONNECT_TIMEOUT: float = float(os.getenv("EBAY_CONNECT_TIMEOUT", "5.0"))
    EBAY_REQUEST_TIMEOUT: float = float(os.getenv("EBAY_REQUEST_TIMEOUT", "10.0"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # "json" ou "text"

settings = Settings()
