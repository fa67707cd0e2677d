"""
Configuration loader for the SmartLock simulator
- Primary source: explicit path or SMARTLOCK_CONFIG env var
- Fallback: configs/config.yaml (for local dev), then built-in defaults
- Accepts flat keys (secret_code, max_attempts, gemini_api_key, ...) and
  promotes them into the nested lock/generator blocks.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from smartlock.utils import logger


DEFAULT_CONFIG_PATH = os.path.join("configs", "config.yaml")


# ----------------------------
# Pydantic models (Pydantic v2)
# ----------------------------
class LockConfig(BaseModel):
    secret_code: str = "1234"
    max_attempts: int = Field(3, ge=1)
    lockout_seconds: int = Field(30, ge=1)
    auto_clear_seconds: float = Field(1.0, gt=0)
    code_length: int = Field(4, ge=1)
    clear_key: str = "C"
    enter_key: str = "E"

    @field_validator("secret_code")
    @classmethod
    def _digits_only(cls, v: str) -> str:
        v = (v or "").strip()
        if not v.isdigit():
            raise ValueError("secret_code must contain digits only")
        return v


class GeneratorConfig(BaseModel):
    api_key: str = ""
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash"
    timeout_s: float = Field(60.0, gt=0)


class AppConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    lock: LockConfig = Field(default_factory=LockConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)


# ----------------------------
# Normalization helpers
# ----------------------------
_FLAT_LOCK_KEYS = (
    "secret_code", "max_attempts", "lockout_seconds",
    "auto_clear_seconds", "code_length", "clear_key", "enter_key",
)


def _resolve_api_key(candidate: Optional[str]) -> str:
    # Prefer explicit config if provided and non-empty
    if candidate and candidate.strip():
        return candidate.strip()
    env_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or ""
    return env_key.strip()


def _normalize_sources(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize raw dict to AppConfig-compatible keys regardless of source style."""
    norm = dict(raw)
    for block in ("lock", "generator"):
        if norm.get(block) is not None and not isinstance(norm[block], dict):
            raise ValueError(f"'{block}' must be a mapping")

    lock = dict(norm.get("lock") or {})
    for k in _FLAT_LOCK_KEYS:
        if norm.get(k) is not None:
            lock.setdefault(k, norm.pop(k))
    if isinstance(lock.get("secret_code"), int):
        # YAML reads unquoted 1234 as an int
        lock["secret_code"] = str(lock["secret_code"])
    norm["lock"] = lock

    gen = dict(norm.get("generator") or {})
    if norm.get("gemini_api_key") is not None:
        gen.setdefault("api_key", norm.pop("gemini_api_key"))
    if norm.get("model") is not None:
        gen.setdefault("model", norm.pop("model"))
    gen["api_key"] = _resolve_api_key(gen.get("api_key"))
    norm["generator"] = gen

    return norm


def _check_consistency(cfg: AppConfig) -> None:
    if len(cfg.lock.secret_code) != cfg.lock.code_length:
        raise ValueError(
            f"secret_code must be exactly {cfg.lock.code_length} digits"
        )
    keys = {cfg.lock.clear_key, cfg.lock.enter_key}
    if len(keys) != 2 or any(k.isdigit() or len(k) != 1 for k in keys):
        raise ValueError("clear_key and enter_key must be distinct single non-digit characters")


# ----------------------------
# Logging
# ----------------------------
def _log_summary(cfg: AppConfig, source: str) -> None:
    logger.info("[CONFIG] Configuration loaded from %s", source)
    logger.info(
        "[CONFIG] Summary: max_attempts=%s, lockout_seconds=%s, auto_clear_seconds=%s, model=%s, api_key=%s",
        cfg.lock.max_attempts, cfg.lock.lockout_seconds, cfg.lock.auto_clear_seconds,
        cfg.generator.model, "set" if cfg.generator.api_key else "missing",
    )


def _build(raw: Dict[str, Any], source: str) -> AppConfig:
    norm = _normalize_sources(raw)
    cfg = AppConfig(**norm)
    _check_consistency(cfg)
    _log_summary(cfg, source)
    return cfg


# ----------------------------
# Public API
# ----------------------------
def load_config(path: str | None = None) -> AppConfig:
    explicit = path or os.getenv("SMARTLOCK_CONFIG")
    if explicit and not os.path.exists(explicit):
        msg = f"Configuration file not found: {explicit}"
        logger.error(msg)
        raise FileNotFoundError(msg)

    cfg_path = explicit or DEFAULT_CONFIG_PATH
    if not os.path.exists(cfg_path):
        return _build({}, "defaults")

    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError("top-level YAML value must be a mapping")
        return _build(raw, cfg_path)
    except ValidationError as ve:
        msg = f"Configuration validation failed: {ve}"
        logger.error(msg)
        raise ValueError(msg) from ve
    except (OSError, yaml.YAMLError, ValueError) as e:
        msg = f"Failed to read YAML at {cfg_path}: {e}"
        logger.error(msg)
        raise ValueError(msg) from e
