# src/kraken_portfolio/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from src.kraken_portfolio.core.errors import ConfigError
from src.kraken_portfolio.exchanges.kraken.rest import BASE_URL
from src.kraken_portfolio.exchanges.kraken.ws import WS_PUBLIC_URL
from src.kraken_portfolio.market_state.models import Credentials

log = logging.getLogger("kraken_portfolio.config")

API_KEY_ENV = "KRAKEN_API_KEY"
API_SECRET_ENV = "KRAKEN_API_SECRET"
CONFIG_ENV = "PORTFOLIO_CONFIG"
DEFAULT_ENV = ".env"
DEFAULT_CONFIG_REL = Path("config") / "portfolio.yaml"


@dataclass(frozen=True)
class AppConfig:
    credentials: Credentials
    rest_url: str = BASE_URL
    ws_url: str = WS_PUBLIC_URL
    timeout_sec: float = 10.0
    config_path: Optional[str] = None


# -------------------------
# .env
# -------------------------
def load_env_file(path: str | Path = DEFAULT_ENV, *, override: bool = False, required: bool = False) -> bool:
    """
    Load KEY=VALUE pairs into os.environ. Variables already set win unless override=True.
    A missing file is a ConfigError when required, otherwise only logged:
    credentials may come from the real environment.
    """
    p = Path(path)
    if not p.is_file():
        if required:
            raise ConfigError(f"env file not found: {p}")
        log.warning("env file not found: %s", p)
        return False
    try:
        loaded = load_dotenv(p, override=override, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"error loading env file {p}: {e}") from e
    if loaded:
        log.info("Loaded .env: %s", p)
    return loaded


def _env(name: str) -> str:
    v = os.getenv(name)
    return v.strip() if isinstance(v, str) else ""


def load_credentials() -> Credentials:
    return Credentials(api_key=_env(API_KEY_ENV), api_secret=_env(API_SECRET_ENV))


# -------------------------
# yaml
# -------------------------
def _find_cfg_candidate(base: Path) -> Optional[Path]:
    base = base.resolve()
    for _ in range(0, 12):
        p = (base / DEFAULT_CONFIG_REL).resolve()
        if p.exists():
            return p
        if base.parent == base:
            break
        base = base.parent
    return None


def resolve_cfg_path(explicit: Optional[str] = None) -> Optional[Path]:
    """--config, then $PORTFOLIO_CONFIG (both must exist), then config/portfolio.yaml upward from cwd."""
    for cand_s, origin in ((explicit, "--config"), (os.environ.get(CONFIG_ENV), CONFIG_ENV)):
        if not cand_s:
            continue
        cand = Path(cand_s).expanduser()
        cand = (Path.cwd() / cand).resolve() if not cand.is_absolute() else cand.resolve()
        if not cand.exists():
            raise ConfigError(f"config file from {origin} not found: {cand}")
        return cand

    return _find_cfg_candidate(Path.cwd())


def load_yaml(path: Optional[Path]) -> dict:
    if path is None:
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must be a mapping")
    return raw


def load_config(
    env_path: Optional[str] = DEFAULT_ENV,
    config_path: Optional[str] = None,
    *,
    env_required: bool = False,
) -> AppConfig:
    if env_path:
        load_env_file(env_path, required=env_required)

    cfg_path = resolve_cfg_path(config_path)
    raw = load_yaml(cfg_path)
    kraken = raw.get("kraken") or {}
    if not isinstance(kraken, dict):
        raise ConfigError("`kraken` section must be a mapping")

    try:
        timeout_sec = float(kraken.get("timeout_sec", 10.0))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"kraken.timeout_sec must be a number: {e}") from e
    if timeout_sec <= 0:
        raise ConfigError("kraken.timeout_sec must be > 0")

    return AppConfig(
        credentials=load_credentials(),
        rest_url=str(kraken.get("rest_url") or BASE_URL).strip(),
        ws_url=str(kraken.get("ws_url") or WS_PUBLIC_URL).strip(),
        timeout_sec=timeout_sec,
        config_path=str(cfg_path) if cfg_path else None,
    )
