# backend/formadb/serve.py
"""
Process entry point: `python -m formadb.serve`.

Reads HOST / PORT / LOG_LEVEL / WEB_CONCURRENCY / RELOAD and the optional
SSL_CERTFILE + SSL_KEYFILE pair from the environment.
"""

import logging
import os

import uvicorn

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _tls_files() -> dict:
    certfile = os.getenv("SSL_CERTFILE") or None
    keyfile = os.getenv("SSL_KEYFILE") or None
    if bool(certfile) != bool(keyfile):
        raise RuntimeError("SSL_CERTFILE and SSL_KEYFILE must be set together.")
    if not certfile:
        return {}
    return {"ssl_certfile": certfile, "ssl_keyfile": keyfile}


def _configure_logging(level: str) -> None:
    # Application loggers log with extra={...}; give them the same level as uvicorn.
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    log_level = os.getenv("LOG_LEVEL", "info").lower()
    reload_enabled = _flag("RELOAD")
    _configure_logging(log_level)

    uvicorn.run(
        "formadb.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload_enabled,
        # uvicorn ignores workers when reloading.
        workers=None if reload_enabled else int(os.getenv("WEB_CONCURRENCY", "1")),
        log_level=log_level,
        proxy_headers=True,
        **_tls_files(),
    )


if __name__ == "__main__":
    main()
