import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Diretório dos arquivos de configuração do gate (apenas JSON, sem código).
CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"

# Cache por arquivo para evitar re-leituras a cada requisição.
_CONFIG_CACHE: Dict[str, Dict[str, Any]] = {}


def load_config(name: str, *, use_cache: bool = True) -> Dict[str, Any]:
    """
    Carrega um arquivo JSON de configuração pelo nome (sem extensão).

    Exemplo: load_config("search_gate") -> app/configs/search_gate.json
    """
    global _CONFIG_CACHE

    if use_cache and name in _CONFIG_CACHE:
        return _CONFIG_CACHE[name]

    config_path = CONFIG_DIR / f"{name}.json"
    try:
        with open(config_path, "r") as f:
            data = json.load(f)
        if use_cache:
            _CONFIG_CACHE[name] = data
        return data
    except FileNotFoundError:
        logger.warning(f"[config_loader] Arquivo não encontrado: {config_path}")
    except json.JSONDecodeError as exc:
        logger.warning(f"[config_loader] JSON inválido em {config_path}: {exc}")
    return {}


def get_section(name: str, default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Carrega um arquivo de config; usa `default` se o arquivo estiver vazio ou ausente."""
    cfg = load_config(name)
    return dict(cfg) if cfg else dict(default or {})


def apply_env_overrides(cfg: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    """
    Sobrescreve chaves numéricas com variáveis de ambiente `<PREFIX>_<CHAVE>`.

    Exemplo: SEARCH_GATE_MIN_SPACING_MS=2000 sobrescreve "min_spacing_ms".
    Valores que não são números são ignorados com warning.
    """
    merged = dict(cfg)
    for key, current in cfg.items():
        env_name = f"{prefix}_{key}".upper()
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            merged[key] = int(raw) if isinstance(current, int) else float(raw)
        except ValueError:
            logger.warning(f"[config_loader] Valor inválido em {env_name}={raw!r}, mantendo {current}")
    return merged


def reset_cache() -> None:
    """Limpa cache em memória (útil para testes)."""
    global _CONFIG_CACHE
    _CONFIG_CACHE = {}
