from __future__ import annotations

import logging
import socket

import uvicorn

from backoffice.config import Settings, configure_logging, get_settings

logger = logging.getLogger("backoffice")


def _port_free(host: str, port: int) -> bool:
    try:
        with socket.create_server((host, port)):
            return True
    except OSError:
        return False


def first_free_port(settings: Settings) -> int:
    candidates = range(settings.port, settings.port + max(1, settings.port_tries))
    port = next((p for p in candidates if _port_free(settings.host, p)), settings.port)
    if port != settings.port:
        logger.warning("Port %s is busy, serving on %s", settings.port, port)
    return port


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "backoffice.main:app",
        host=settings.host,
        port=first_free_port(settings),
        reload=settings.reload,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
