"""
Node configuration.

Frozen dataclasses built from plain dicts or YAML files, e.g.

    device_id: "1A2B"         # quote it; YAML reads 0010 as an octal int
    ack_jitter_ms: 2000
    modem:
      bit_duration: 0.05
      noise_floor_db: -85
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .identity import is_reserved, normalize_id
from .modems.imodem import ModemConfig

_LOG_LEVELS = {"debug", "info", "warn", "warning", "error"}


@dataclass(frozen=True)
class NodeConfig:
    modem: ModemConfig = field(default_factory=ModemConfig)
    device_id: Optional[str] = None         # generated at start-up when None
    ack_jitter_ms: int = 2000
    handshake_timeout_ms: int = 15_000      # 0 disables
    poll_interval: float = 1.0 / 60.0       # seconds between receive-loop steps
    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.device_id is not None:
            did = normalize_id(self.device_id)
            if is_reserved(did):
                raise ValueError(f"device_id {did} is reserved")
            object.__setattr__(self, "device_id", did)
        if self.ack_jitter_ms < 0:
            raise ValueError("ack_jitter_ms must be >= 0")
        if self.handshake_timeout_ms < 0:
            raise ValueError("handshake_timeout_ms must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        if self.log_level.lower() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")


def _check_keys(d: Mapping[str, Any], cls: type, where: str) -> None:
    allowed = {f.name for f in fields(cls)}
    unknown = set(d) - allowed
    if unknown:
        raise ValueError(f"unknown {where} option(s): {sorted(unknown)}")


def config_from_dict(d: Optional[Mapping[str, Any]]) -> NodeConfig:
    d = dict(d or {})
    _check_keys(d, NodeConfig, "node")
    modem_d = d.pop("modem", None) or {}
    if not isinstance(modem_d, Mapping):
        raise ValueError("modem must be a mapping")
    _check_keys(modem_d, ModemConfig, "modem")
    if d.get("device_id") is not None:
        d["device_id"] = str(d["device_id"])
    return NodeConfig(modem=ModemConfig(**modem_d), **d)


def load_config(path: Union[str, Path]) -> NodeConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: top level must be a mapping")
    return config_from_dict(data)


def config_to_dict(cfg: NodeConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {f.name: getattr(cfg, f.name) for f in fields(cfg) if f.name != "modem"}
    out["modem"] = {f.name: getattr(cfg.modem, f.name) for f in fields(cfg.modem)}
    return out
