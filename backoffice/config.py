from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv(Path(__file__).with_name(".env"))
load_dotenv()

_FALSE = {"0", "false", "False", "no"}


class Settings(BaseModel):
    redis_url: Optional[str] = None
    draft_expiry_days: int = 7
    persistence_api_url: Optional[str] = None
    persistence_api_token: Optional[str] = None
    submit_timeout_seconds: float = 30.0
    log_level: str = "info"
    host: str = "127.0.0.1"
    port: int = 8002
    port_tries: int = 20
    reload: bool = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        redis_url=os.getenv("REDIS_URL") or None,
        draft_expiry_days=int(os.getenv("DRAFT_EXPIRY_DAYS", "7")),
        persistence_api_url=(os.getenv("PERSISTENCE_API_URL") or "").rstrip("/") or None,
        persistence_api_token=os.getenv("PERSISTENCE_API_TOKEN") or None,
        submit_timeout_seconds=float(os.getenv("SUBMIT_TIMEOUT_SECONDS", "30")),
        log_level=os.getenv("LOG_LEVEL", "info"),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8002")),
        port_tries=int(os.getenv("PORT_TRIES", "20")),
        reload=os.getenv("RELOAD", "1") not in _FALSE,
    )


def configure_logging(level: str | None = None) -> None:
    name = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
