# chatbot/settings.py
from typing import Dict, List
from pathlib import Path
import logging
import os

import yaml

log = logging.getLogger("chatbot.settings")

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_ROOT.parent

CONFIG_PATH = Path(os.getenv("GRADECHAT_CONFIG") or PACKAGE_ROOT / "config" / "app.yaml")

OPENAI_KEY_PLACEHOLDER = "your-openai-api-key-here"


def _load_config(path: Path = CONFIG_PATH) -> Dict:
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    log.debug("No config file at %s, using defaults", path)
    return {}


CFG = _load_config()


def _resolve_path(raw: str) -> Path:
    p = Path(raw)
    return p if p.is_absolute() else PROJECT_ROOT / p


WAREHOUSE_PATH = _resolve_path(
    os.getenv("GRADECHAT_WAREHOUSE") or CFG.get("warehouse_path", "data/warehouse/grades.parquet")
)

PROFESSOR_MATCH_THRESHOLD = float(CFG.get("professor_match_threshold", 0.6))
SINGLE_TOKEN_MATCH_THRESHOLD = float(CFG.get("single_token_match_threshold", 0.5))

NARRATIVE_MODEL = os.getenv("GRADECHAT_MODEL") or CFG.get("narrative_model", "gpt-4o-mini")
NARRATIVE_MAX_TOKENS = int(CFG.get("narrative_max_tokens", 1000))
NARRATIVE_TEMPERATURE = float(CFG.get("narrative_temperature", 0.7))
NARRATIVE_CACHE_TTL = int(CFG.get("narrative_cache_ttl_seconds", 1800))

CORS_ORIGINS: List[str] = list(CFG.get("cors_origins") or ["http://localhost:3000"])


def openai_configured() -> bool:
    """True when an OpenAI key is set and is not the sample placeholder."""
    key = os.getenv("OPENAI_API_KEY") or ""
    return bool(key.strip()) and key.strip() != OPENAI_KEY_PLACEHOLDER
