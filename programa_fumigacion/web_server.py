from __future__ import annotations

import logging
from typing import Callable

from flask import Flask, Response, jsonify, request

from programa_fumigacion.db import session_scope
from programa_fumigacion.errores import ErrorConfiguracion
from programa_fumigacion.google_sheets import extraer_spreadsheet_id, url_spreadsheet
from programa_fumigacion.repos import ConfigSheetsRepo
from programa_fumigacion.settings import Settings
from programa_fumigacion.sincronizacion_google import ResultadoSync, SincronizadorProgramaSheets, SolicitudSync

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, PUT, OPTIONS",
}


def _config_dict(cfg) -> dict:
    return {
        "almacen_id": cfg.almacen_id,
        "spreadsheet_id": cfg.spreadsheet_id,
        "sheet_name": cfg.sheet_name,
        "data_start_row": cfg.data_start_row,
        "last_synced_at": cfg.last_synced_at.isoformat() if cfg.last_synced_at else None,
        "last_sync_rows": cfg.last_sync_rows,
        "activo": bool(cfg.activo),
        "url": url_spreadsheet(cfg.spreadsheet_id),
    }


def create_app(
    session_factory,
    settings: Settings,
    sincronizador_factory: Callable[[], SincronizadorProgramaSheets] | None = None,
) -> Flask:
    def _sincronizador() -> SincronizadorProgramaSheets:
        if sincronizador_factory is not None:
            return sincronizador_factory()
        return SincronizadorProgramaSheets(session_factory, settings)

    app = Flask(__name__, static_folder=None)

    @app.after_request
    def add_cors(resp: Response) -> Response:
        resp.headers.update(CORS_HEADERS)
        return resp

    @app.get("/health")
    def health() -> Response:
        return jsonify({"ok": True, "app": settings.APP_NAME})

    @app.route("/sheets-sync", methods=["POST", "OPTIONS"])
    def sheets_sync():
        # CORS preflight
        if request.method == "OPTIONS":
            return Response("ok")

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}

        try:
            solicitud = SolicitudSync.desde_dict(data)
        except ErrorConfiguracion as e:
            resultado = ResultadoSync.de_error(str(e))
        else:
            resultado = _sincronizador().sincronizar(solicitud)

        return jsonify(resultado.to_dict()), (500 if resultado.fallido else 200)

    @app.get("/api/sheets-config/<almacen_id>")
    def get_sheets_config(almacen_id: str):
        with session_scope(session_factory) as session:
            cfg = ConfigSheetsRepo(session).obtener(almacen_id)
            if cfg is None:
                return jsonify({"ok": False, "error": "Sin configuración"}), 404
            return jsonify({"ok": True, "config": _config_dict(cfg)})

    @app.put("/api/sheets-config/<almacen_id>")
    def put_sheets_config(almacen_id: str):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        spreadsheet_id = extraer_spreadsheet_id(data.get("spreadsheet_id"))
        if not spreadsheet_id:
            return jsonify({"ok": False, "error": "Spreadsheet ID o URL inválido"}), 400

        raw_start = data.get("data_start_row")
        try:
            data_start_row = settings.SHEETS_DATA_START_ROW if raw_start in (None, "") else int(raw_start)
        except (TypeError, ValueError):
            return jsonify({"ok": False, "error": "data_start_row debe ser un número"}), 400
        if data_start_row < 1:
            return jsonify({"ok": False, "error": "data_start_row debe ser >= 1"}), 400

        sheet_name = str(data.get("sheet_name") or settings.SHEETS_DEFAULT_SHEET_NAME).strip()
        with session_scope(session_factory) as session:
            cfg = ConfigSheetsRepo(session).guardar(
                almacen_id,
                spreadsheet_id=spreadsheet_id,
                sheet_name=sheet_name,
                data_start_row=data_start_row,
            )
            payload = _config_dict(cfg)

        logger.info("Configuración de Sheets guardada para %s", almacen_id)
        return jsonify({"ok": True, "config": payload})

    return app
