# backend/orgdb/serve.py
"""
Production entry point: `python -m orgdb.serve`.

Everything is driven by environment variables (HOST, PORT, RELOAD,
LOG_LEVEL, FORWARDED_ALLOW_IPS and the optional SSL_* set).
"""

import logging
import os
from typing import Any, Dict

import uvicorn

_SSL_ENV = {
    "SSL_CERTFILE": "ssl_certfile",
    "SSL_KEYFILE": "ssl_keyfile",
    "SSL_CA_CERTS": "ssl_ca_certs",
    "SSL_KEYFILE_PASSWORD": "ssl_keyfile_password",
}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def server_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
        "reload": _env_flag("RELOAD"),
        "log_level": os.getenv("LOG_LEVEL", "info").lower(),
        "proxy_headers": True,
        "forwarded_allow_ips": os.getenv("FORWARDED_ALLOW_IPS", "*"),
    }
    for env_name, option in _SSL_ENV.items():
        value = os.getenv(env_name)
        if value:
            options[option] = value
    return options


def main() -> None:
    options = server_options()
    logging.basicConfig(
        level=options["log_level"].upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("orgdb.main:app", **options)


if __name__ == "__main__":
    main()
