"""
Environment based configuration for the entry points (api.py, main.py).

Providers never read the environment themselves; they receive one of the
config records built here.

    KYC_PROVIDER                 idology | trulioo (default idology)
    KYC_HTTP_TIMEOUT             seconds, optional
    KYC_HTTP_PROXY               proxy URL, optional
    IDOLOGY_HOST / IDOLOGY_USERNAME / IDOLOGY_PASSWORD
    IDOLOGY_USE_SUMMARY_RESULT   true/false
    TRULIOO_HOST / TRULIOO_TOKEN
    TRULIOO_CONSENTS             comma separated datasource names
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Union

from dotenv import load_dotenv

from .providers.idology import KYC_ENDPOINT, IDologyConfig
from .providers.trulioo import TRULIOO_ENDPOINT, TruliooConfig

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppConfig:
    provider: str
    provider_config: Union[IDologyConfig, TruliooConfig]
    timeout: Optional[float] = None
    proxy_url: Optional[str] = None


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE


def _timeout() -> Optional[float]:
    raw = (os.getenv("KYC_HTTP_TIMEOUT") or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"KYC_HTTP_TIMEOUT must be a number of seconds, got {raw!r}") from exc


def idology_config() -> IDologyConfig:
    return IDologyConfig(
        host=os.getenv("IDOLOGY_HOST", KYC_ENDPOINT),
        username=os.getenv("IDOLOGY_USERNAME", ""),
        password=os.getenv("IDOLOGY_PASSWORD", ""),
        use_summary_result=_flag("IDOLOGY_USE_SUMMARY_RESULT"),
    )


def trulioo_config() -> TruliooConfig:
    consents = os.getenv("TRULIOO_CONSENTS", "")
    return TruliooConfig(
        host=os.getenv("TRULIOO_HOST", TRULIOO_ENDPOINT),
        token=os.getenv("TRULIOO_TOKEN", ""),
        consents=tuple(c.strip() for c in consents.split(",") if c.strip()),
    )


def load_config(dotenv: bool = True) -> AppConfig:
    """Read the selected provider's settings (optionally from a .env file first)."""
    if dotenv:
        load_dotenv()

    provider = os.getenv("KYC_PROVIDER", "idology").strip().lower()
    if provider == "idology":
        provider_config: Union[IDologyConfig, TruliooConfig] = idology_config()
    elif provider == "trulioo":
        provider_config = trulioo_config()
    else:
        raise ValueError(f"Unsupported KYC_PROVIDER {provider!r}")

    return AppConfig(
        provider=provider,
        provider_config=provider_config,
        timeout=_timeout(),
        proxy_url=os.getenv("KYC_HTTP_PROXY") or None,
    )
