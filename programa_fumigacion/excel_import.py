from __future__ import annotations

import logging
import re
import unicodedata
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils import column_index_from_string

from programa_fumigacion.errores import ErrorLectura

logger = logging.getLogger(__name__)

_RANGO_A1 = re.compile(r"^(?:'((?:[^']|'')+)'|([^!]+))!([A-Z]+)(\d+):([A-Z]+)(\d+)$")


def _norm(x: Any) -> str:
    s = " ".join(str(x or "").strip().split())
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s.casefold()


def dividir_rango(rango: str) -> tuple[str, int, int, int, int]:
    """'Programa!A2:J1000' -> (hoja, fila_ini, col_ini, fila_fin, col_fin), todo en base 1."""
    m = _RANGO_A1.match((rango or "").strip())
    if not m:
        raise ErrorLectura(f"Rango inválido: {rango!r}")
    hoja = m.group(1).replace("''", "'") if m.group(1) is not None else m.group(2)
    return (
        hoja,
        int(m.group(4)),
        column_index_from_string(m.group(3)),
        int(m.group(6)),
        column_index_from_string(m.group(5)),
    )


def formatear_celda(value: Any) -> str:
    """Texto de la celda como lo mostraría Google Sheets (FORMATTED_VALUE)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.strftime("%d/%m/%Y")
        return value.strftime("%d/%m/%Y %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class LectorRangoExcel:
    """Lee el mismo rango A1 desde un .xlsx exportado del programa (sin red).

    Respeta la interfaz de ``LectorRangoSheets``: el token y el spreadsheet_id
    se ignoran. Igual que la API, no devuelve celdas ni filas vacías al final.
    """

    def __init__(self, xlsx_path: Path):
        self.xlsx_path = Path(xlsx_path)

    def _hoja(self, wb, nombre: str):
        match = next((n for n in wb.sheetnames if _norm(n) == _norm(nombre)), None)
        if match is None:
            raise ErrorLectura(f"La hoja '{nombre}' no existe en {self.xlsx_path.name}")
        return wb[match]

    def leer_rango(self, token: str, spreadsheet_id: str, rango: str) -> list[list[str]]:
        if not self.xlsx_path.exists():
            raise ErrorLectura(f"Archivo Excel no encontrado: {self.xlsx_path}")

        hoja, fila_ini, col_ini, fila_fin, col_fin = dividir_rango(rango)

        # read_only + values_only: no cell objects, low memory.
        wb = load_workbook(filename=self.xlsx_path, data_only=True, read_only=True)
        try:
            ws = self._hoja(wb, hoja)
            rows: list[list[str]] = []
            for row_vals in ws.iter_rows(
                min_row=fila_ini, max_row=fila_fin, min_col=col_ini, max_col=col_fin, values_only=True
            ):
                celdas = [formatear_celda(v) for v in row_vals]
                while celdas and celdas[-1] == "":
                    celdas.pop()
                rows.append(celdas)
        finally:
            wb.close()

        while rows and not rows[-1]:
            rows.pop()

        logger.info("Leídas %s filas de %s (%s)", len(rows), self.xlsx_path.name, rango)
        return rows
