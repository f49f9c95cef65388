from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"
CONFIG_PATH_ENV = "SECRET_PROBE_CONFIG"


@dataclass(frozen=True)
class CycleHttpConfig:
    url: str

    timeout_sec: float = 2.0
    max_retries: int = 3
    queue_max: int = 1000
    drop_on_full: bool = True


@dataclass(frozen=True)
class AppConfig:
    secret_name: str = "my-secret"
    secret_key: str = "time"
    pod_name: str = "my-pod"

    namespace: str = ""
    kube_context: str = ""
    kubectl: str = "kubectl"
    image: str = "busybox"
    mount_path: str = "/secrets"
    initial_value: str = "initial-value"

    poll_interval_sec: float = 1.0
    ready_timeout_sec: float = 120.0

    write_retries: int = 3
    retry_backoff_sec: float = 0.25

    inbox_size: int = 16
    max_cycles: int = 0

    log_level: str = "INFO"

    cycle_http: Optional[CycleHttpConfig] = None


def _req(d: Mapping[str, Any], path: str) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            raise ValueError(f"Config inválida: campo obrigatório '{path}' ausente.")
        cur = cur[part]
    return cur


def _opt(d: Mapping[str, Any], path: str, default: Any) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return default if cur is None else cur


def _name(d: Mapping[str, Any], path: str, default: str) -> str:
    v = str(_opt(d, path, default)).strip()
    if not v:
        raise ValueError(f"Config inválida: '{path}' não pode ser vazio.")
    return v


def _cycle_http(raw: Any) -> Optional[CycleHttpConfig]:
    if not isinstance(raw, Mapping):
        return None
    if not bool(_opt(raw, "enabled", False)):
        return None

    url = str(_req(raw, "url")).strip()
    if not url:
        raise ValueError("Config inválida: 'cycle_http.url' não pode ser vazio.")

    max_retries = int(_opt(raw, "max_retries", 3))
    if max_retries < 0:
        raise ValueError("Config inválida: 'cycle_http.max_retries' deve ser >= 0.")

    return CycleHttpConfig(
        url=url,
        timeout_sec=float(_opt(raw, "timeout_sec", 2.0)),
        max_retries=max_retries,
        queue_max=int(_opt(raw, "queue_max", 1000)),
        drop_on_full=bool(_opt(raw, "drop_on_full", True)),
    )


def resolve_config_path(path: Optional[str] = None) -> Path:
    if path:
        return Path(path)
    return Path(os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Sem arquivo = configuração padrão (my-secret / my-pod, leitura a cada 1s).
    """
    p = resolve_config_path(path)
    if not p.exists():
        return AppConfig()

    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Config inválida: '{p}' deve conter um mapa (dict).")

    poll_interval_sec = float(_opt(data, "poll_interval_sec", 1.0))
    if poll_interval_sec <= 0:
        raise ValueError("Config inválida: 'poll_interval_sec' deve ser > 0.")

    ready_timeout_sec = float(_opt(data, "ready_timeout_sec", 120.0))
    if ready_timeout_sec <= 0:
        raise ValueError("Config inválida: 'ready_timeout_sec' deve ser > 0.")

    write_retries = int(_opt(data, "write_retries", 3))
    if write_retries < 0:
        raise ValueError("Config inválida: 'write_retries' deve ser >= 0.")

    inbox_size = int(_opt(data, "inbox_size", 16))
    if inbox_size < 1:
        raise ValueError("Config inválida: 'inbox_size' deve ser >= 1.")

    max_cycles = int(_opt(data, "max_cycles", 0))
    if max_cycles < 0:
        raise ValueError("Config inválida: 'max_cycles' deve ser >= 0 (0 = sem limite).")

    return AppConfig(
        secret_name=_name(data, "secret_name", "my-secret"),
        secret_key=_name(data, "secret_key", "time"),
        pod_name=_name(data, "pod_name", "my-pod"),
        namespace=str(_opt(data, "namespace", "")).strip(),
        kube_context=str(_opt(data, "kube_context", "")).strip(),
        kubectl=_name(data, "kubectl", "kubectl"),
        image=_name(data, "image", "busybox"),
        mount_path=_name(data, "mount_path", "/secrets").rstrip("/") or "/",
        initial_value=str(_opt(data, "initial_value", "initial-value")),
        poll_interval_sec=poll_interval_sec,
        ready_timeout_sec=ready_timeout_sec,
        write_retries=write_retries,
        retry_backoff_sec=float(_opt(data, "retry_backoff_sec", 0.25)),
        inbox_size=inbox_size,
        max_cycles=max_cycles,
        log_level=str(_opt(data, "log_level", "INFO")),
        cycle_http=_cycle_http(_opt(data, "cycle_http", None)),
    )
