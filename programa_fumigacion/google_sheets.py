"""
Lectura del programa de fumigación desde Google Sheets (API v4, sólo lectura).

Columnas esperadas (A -> J):
    A: Semana               (número, ej: 8)
    B: Fecha                (DD/MM/YYYY, ej: 24/02/2026)
    C: Variedad             (BILOXI | AZRA 4S | AZRA 3S Y 5S | ...)
    D: Productos            (nombre exacto del producto)
    E: Dosis por 200 litros (número, ej: 0.5)
    F: Total                (calculado, se ignora)
    G: Inventario           (calculado, se ignora)
    H: Necesidad            (calculada, se ignora)
    I: Método aplicación    (FOLIAR | DRENCH | TOMA DOMICILIARIA | ...)
    J: Tambos               (número, ej: 5)

Uso:
    from programa_fumigacion.google_sheets import LectorRangoSheets, construir_rango

    lector = LectorRangoSheets()
    filas = lector.leer_rango(token, spreadsheet_id, construir_rango("Programa", 2))
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Protocol

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from programa_fumigacion.errores import ErrorLectura

logger = logging.getLogger(__name__)

COLUMNA_INICIAL = "A"
COLUMNA_FINAL = "J"
FILA_FINAL_DEFAULT = 1000

_ID_EN_URL = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")
_HOJA_SIMPLE = re.compile(r"^[A-Za-z0-9_]+$")


class LectorRango(Protocol):
    def leer_rango(self, token: str, spreadsheet_id: str, rango: str) -> list[list[str]]: ...


def extraer_spreadsheet_id(url_o_id: str | None) -> str | None:
    """
    Extrae el Spreadsheet ID desde una URL completa o lo retorna directamente.
    URL: https://docs.google.com/spreadsheets/d/[ID]/edit
    """
    trimmed = str(url_o_id or "").strip()
    if "/" not in trimmed:
        return trimmed if len(trimmed) > 10 else None
    m = _ID_EN_URL.search(trimmed)
    return m.group(1) if m else None


def url_spreadsheet(spreadsheet_id: str) -> str:
    if not spreadsheet_id:
        return ""
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"


def referencia_hoja(hoja: str) -> str:
    # A1 notation needs quotes for names with spaces or symbols.
    if _HOJA_SIMPLE.match(hoja):
        return hoja
    return "'" + hoja.replace("'", "''") + "'"


def construir_rango(hoja: str, fila_inicio: int, fila_fin: int = FILA_FINAL_DEFAULT) -> str:
    return f"{referencia_hoja(hoja)}!{COLUMNA_INICIAL}{int(fila_inicio)}:{COLUMNA_FINAL}{int(fila_fin)}"


def _servicio_con_token(token: str):
    creds = Credentials(token=token)
    return build("sheets", "v4", credentials=creds, cache_discovery=False)


class LectorRangoSheets:
    """Una llamada ``values.get`` por corrida; sin reintentos."""

    def __init__(self, service_factory: Callable[[str], Any] | None = None):
        self._service_factory = service_factory or _servicio_con_token

    def leer_rango(self, token: str, spreadsheet_id: str, rango: str) -> list[list[str]]:
        service = self._service_factory(token)
        try:
            result = service.spreadsheets().values().get(spreadsheetId=spreadsheet_id, range=rango).execute()
        except HttpError as e:
            status = getattr(e.resp, "status", "?")
            body = e.content.decode("utf-8", errors="replace") if isinstance(e.content, bytes) else str(e.content)
            raise ErrorLectura(f"Google Sheets API error {status}: {body}") from e

        rows = result.get("values", []) or []
        logger.info("Leídas %s filas de %s (%s)", len(rows), spreadsheet_id, rango)
        return rows
