from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from programa_fumigacion.db import create_engine_from_url, session_factory_from_settings, session_scope
from programa_fumigacion.errores import ErrorConfiguracion
from programa_fumigacion.excel_import import LectorRangoExcel
from programa_fumigacion.google_sheets import extraer_spreadsheet_id
from programa_fumigacion.models import Base
from programa_fumigacion.repos import ConfigSheetsRepo
from programa_fumigacion.settings import Settings
from programa_fumigacion.sincronizacion_google import ResultadoSync, SincronizadorProgramaSheets, SolicitudSync


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincroniza el programa de fumigación desde Google Sheets")
    sub = parser.add_subparsers(dest="command", required=True)

    p_sync = sub.add_parser("sync", help="Importa el programa a fum_programa (UPSERT por fila)")
    p_sync.add_argument("--almacen", required=True, help="almacen_id dueño del programa")
    p_sync.add_argument(
        "--spreadsheet",
        default="",
        help="Spreadsheet ID o URL (por defecto, el guardado para el almacén)",
    )
    p_sync.add_argument("--sheet", default=None, help="Nombre de la pestaña")
    p_sync.add_argument("--start-row", type=int, default=None, help="Primera fila de datos")
    p_sync.add_argument("--semana", type=int, default=None, help="Importar sólo esta semana")
    p_sync.add_argument("--dry-run", action="store_true", help="Simular sin escribir")
    p_sync.add_argument("--xlsx", type=Path, default=None, help="Leer desde un .xlsx exportado en lugar de la API")

    p_cfg = sub.add_parser("config", help="Guarda el Sheets asociado a un almacén")
    p_cfg.add_argument("--almacen", required=True)
    p_cfg.add_argument("--spreadsheet", required=True, help="Spreadsheet ID o URL")
    p_cfg.add_argument("--sheet", default=settings.SHEETS_DEFAULT_SHEET_NAME)
    p_cfg.add_argument("--start-row", type=int, default=settings.SHEETS_DATA_START_ROW)

    sub.add_parser("reset", help="Borra y recrea fum_programa y fum_sheets_config")
    return parser


def _cmd_sync(args, settings: Settings, session_factory) -> int:
    if args.xlsx is not None:
        # Local file: no Google credential or token involved.
        sincronizador = SincronizadorProgramaSheets(
            session_factory,
            settings,
            obtener_token=lambda _credencial: "",
            lector=LectorRangoExcel(args.xlsx),
            credencial="local",
        )
    else:
        sincronizador = SincronizadorProgramaSheets(session_factory, settings)

    overrides = {"dry_run": bool(args.dry_run), "filter_semana": args.semana}
    if args.sheet:
        overrides["sheet_name"] = args.sheet
    if args.start_row is not None:
        overrides["data_start_row"] = args.start_row

    # An xlsx export keeps the sync keys of its spreadsheet, so the id is still required.
    if args.spreadsheet:
        base = {
            "almacen_id": args.almacen,
            "spreadsheet_id": args.spreadsheet,
            "sheet_name": settings.SHEETS_DEFAULT_SHEET_NAME,
            "data_start_row": settings.SHEETS_DATA_START_ROW,
        }
        solicitud = SolicitudSync(**{**base, **overrides})
        resultado = sincronizador.sincronizar(solicitud)
    else:
        try:
            solicitud = sincronizador.solicitud_desde_config(args.almacen, **overrides)
        except ErrorConfiguracion as e:
            resultado = ResultadoSync.de_error(str(e), dry_run=bool(args.dry_run))
        else:
            resultado = sincronizador.sincronizar(solicitud)

    print(json.dumps(resultado.to_dict(), ensure_ascii=False, indent=2))
    return 1 if resultado.fallido else 0


def _cmd_config(args, settings: Settings, session_factory) -> int:
    spreadsheet_id = extraer_spreadsheet_id(args.spreadsheet)
    if not spreadsheet_id:
        print("ERROR: Spreadsheet ID o URL inválido")
        return 1
    if args.start_row < 1:
        print("ERROR: --start-row debe ser >= 1")
        return 1

    with session_scope(session_factory) as session:
        ConfigSheetsRepo(session).guardar(
            args.almacen,
            spreadsheet_id=spreadsheet_id,
            sheet_name=args.sheet,
            data_start_row=args.start_row,
        )
    print(f"OK: {args.almacen} -> {spreadsheet_id} ({args.sheet}, fila {args.start_row})")
    return 0


def _cmd_reset(settings: Settings) -> int:
    engine = create_engine_from_url(settings.DATABASE_URL)
    try:
        Base.metadata.drop_all(engine)
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()

    print(f"OK: base de datos reiniciada ({settings.DATABASE_URL})")
    return 0


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    settings = settings or Settings()
    args = _build_parser(settings).parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings.ensure_instance()
    if args.command == "reset":
        return _cmd_reset(settings)

    session_factory = session_factory_from_settings(settings)

    if args.command == "config":
        return _cmd_config(args, settings, session_factory)
    return _cmd_sync(args, settings, session_factory)


if __name__ == "__main__":
    raise SystemExit(main())
