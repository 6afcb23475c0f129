"""
Constantes globais do eBay Search Gate.

Este arquivo centraliza constantes que são usadas em múltiplos módulos.
Constantes específicas de cada módulo devem ficar em seus próprios arquivos.
"""

# Versão do sistema
VERSION = "1.0.0"
SERVICE_NAME = "eBay Search Gate"

# Endpoints da API eBay (relativos a EBAY_API_BASE)
EBAY_SEARCH_PATH = "/buy/browse/v1/item_summary/search"
EBAY_RATE_LIMIT_PATH = "/developer/analytics/v1/rate_limit"

# Filtro aplicado quando filter_flag=True (apenas "Compre já")
EBAY_FIXED_PRICE_FILTER = "buyingOptions:{FIXED_PRICE}"

# Limites de entrada
MAX_KEYWORD_LENGTH = 350

# Nome da seção de configuração do gate (app/configs/search_gate.json)
SEARCH_GATE_CONFIG = "search_gate"
SEARCH_GATE_ENV_PREFIX = "SEARCH_GATE"
