from __future__ import annotations

import argparse
import logging
import socket

from programa_fumigacion.db import session_factory_from_settings
from programa_fumigacion.settings import Settings
from programa_fumigacion.web_server import create_app


def _ensure_port_free(host: str, port: int) -> bool:
    # Returns True if we can bind (port free), False otherwise.
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((host, port))
            return True
        finally:
            s.close()
    except OSError:
        return False


def main() -> int:
    p = argparse.ArgumentParser(description="Programa de fumigación - endpoint sheets-sync")
    p.add_argument("--host", default="127.0.0.1", help="Bind host (use 0.0.0.0 for LAN)")
    p.add_argument("--port", type=int, default=8000, help="Port")
    p.add_argument("--debug", action="store_true", help="Flask debug mode")
    args = p.parse_args()

    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not _ensure_port_free(args.host, args.port):
        print(f"El servidor ya está iniciado (o el puerto está ocupado): {args.host}:{args.port}")
        return 2

    settings.ensure_instance()
    app = create_app(session_factory_from_settings(settings), settings)

    print(f"POST http://{args.host}:{args.port}/sheets-sync  (salud: /health)")
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
