"""Runtime settings, read from LANMIRROR_* environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_PORT = 8080
DEFAULT_BUNDLE = Path(__file__).parent / "web_app"


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class ServerConfig:
    port: int = DEFAULT_PORT
    bundle: Path = DEFAULT_BUNDLE
    staging_dir: Optional[Path] = None
    entry_file: str = "index.html"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        env = os.environ if env is None else env
        staging = env.get("LANMIRROR_STAGING_DIR")
        return cls(
            port=_int_env(env, "LANMIRROR_PORT", DEFAULT_PORT),
            bundle=Path(env.get("LANMIRROR_BUNDLE") or DEFAULT_BUNDLE),
            staging_dir=Path(staging) if staging else None,
            entry_file=env.get("LANMIRROR_ENTRY_FILE") or "index.html",
            log_level=(env.get("LANMIRROR_LOG_LEVEL") or "INFO").upper(),
        )
