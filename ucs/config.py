"""
ucs.config — runtime limits, gas schedule, and layout names.

Centralizes configuration for the host engine and the forwarding contracts.
It has NO third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (UCS_*)
  2) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean):
  - UCS_DEFAULT_GAS_LIMIT           (int)    default: 10_000_000
  - UCS_MAX_CALL_DEPTH              (int)    default: 1024
  - UCS_MAX_CALLDATA_BYTES          (int)    default: 131_072
  - UCS_STRICT_DECODING             (bool)   default: true
  - UCS_PROXY_DICTIONARY_NAMESPACE  (str)    default: erc7546.proxy.dictionary
  - UCS_LOG_LEVEL                   (str)    default: WARNING
  - UCS_LOG_JSON                    (bool)   default: false
  - UCS_GAS_SLOAD / UCS_GAS_SSTORE / UCS_GAS_CALL / UCS_GAS_CREATE /
    UCS_GAS_KECCAK_WORD / UCS_GAS_LOG / UCS_GAS_STEP  (int)

Usage:
    from ucs.config import load_config
    cfg = load_config()
    if cfg.strict_decoding: ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict


# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class GasSchedule:
    step: int
    sload: int
    sstore: int
    call: int
    create: int
    keccak_word: int
    log: int

    def as_dict(self) -> Dict[str, int]:
        return {
            "step": self.step,
            "sload": self.sload,
            "sstore": self.sstore,
            "call": self.call,
            "create": self.create,
            "keccak_word": self.keccak_word,
            "log": self.log,
        }


@dataclass(frozen=True)
class UcsConfig:
    # Execution limits
    default_gas_limit: int
    max_call_depth: int
    max_calldata_bytes: int
    strict_decoding: bool

    # Layout
    proxy_dictionary_namespace: str

    # Logging
    log_level: str
    log_json: bool

    gas: GasSchedule

    def as_dict(self) -> Dict[str, Any]:
        return {
            "default_gas_limit": self.default_gas_limit,
            "max_call_depth": self.max_call_depth,
            "max_calldata_bytes": self.max_calldata_bytes,
            "strict_decoding": self.strict_decoding,
            "proxy_dictionary_namespace": self.proxy_dictionary_namespace,
            "log_level": self.log_level,
            "log_json": self.log_json,
            "gas": self.gas.as_dict(),
        }


@lru_cache(maxsize=1)
def load_config() -> UcsConfig:
    """
    Build and cache a UcsConfig from environment + safe defaults.
    """
    gas = GasSchedule(
        step=_env_int("UCS_GAS_STEP", 1, min_v=0, max_v=1_000),
        sload=_env_int("UCS_GAS_SLOAD", 100, min_v=0, max_v=100_000),
        sstore=_env_int("UCS_GAS_SSTORE", 2_900, min_v=0, max_v=100_000),
        call=_env_int("UCS_GAS_CALL", 700, min_v=0, max_v=100_000),
        create=_env_int("UCS_GAS_CREATE", 32_000, min_v=0, max_v=1_000_000),
        keccak_word=_env_int("UCS_GAS_KECCAK_WORD", 6, min_v=0, max_v=1_000),
        log=_env_int("UCS_GAS_LOG", 375, min_v=0, max_v=100_000),
    )
    return UcsConfig(
        default_gas_limit=_env_int("UCS_DEFAULT_GAS_LIMIT", 10_000_000, min_v=21_000, max_v=1_000_000_000),
        max_call_depth=_env_int("UCS_MAX_CALL_DEPTH", 1024, min_v=8, max_v=1024),
        max_calldata_bytes=_env_int("UCS_MAX_CALLDATA_BYTES", 131_072, min_v=1_024, max_v=8_388_608),
        strict_decoding=_env_bool("UCS_STRICT_DECODING", True),
        proxy_dictionary_namespace=_env_str("UCS_PROXY_DICTIONARY_NAMESPACE", "erc7546.proxy.dictionary"),
        log_level=_env_str("UCS_LOG_LEVEL", "WARNING").upper(),
        log_json=_env_bool("UCS_LOG_JSON", False),
        gas=gas,
    )


__all__ = ["GasSchedule", "UcsConfig", "load_config"]
