from __future__ import annotations

from typing import Any, Dict, List

import httplib2
import pytest
from googleapiclient.errors import HttpError

from programa_fumigacion.errores import ErrorLectura
from programa_fumigacion.google_sheets import (
    LectorRangoSheets,
    construir_rango,
    extraer_spreadsheet_id,
    url_spreadsheet,
)


class _FakeRequest:
    def __init__(self, callback):
        self._callback = callback

    def execute(self):
        return self._callback()


class _FakeValues:
    def __init__(self, service: "_FakeService") -> None:
        self._service = service

    def get(self, spreadsheetId: str, range: str):  # noqa: N803 - API compatibility
        self._service.calls.append({"spreadsheetId": spreadsheetId, "range": range})
        return _FakeRequest(self._service._handle_get)


class _FakeSpreadsheets:
    def __init__(self, service: "_FakeService") -> None:
        self._service = service

    def values(self) -> _FakeValues:
        return _FakeValues(self._service)


class _FakeService:
    def __init__(self, payload: Dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.payload = payload if payload is not None else {}
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def spreadsheets(self) -> _FakeSpreadsheets:
        return _FakeSpreadsheets(self)

    def _handle_get(self) -> Dict[str, Any]:
        if self.error is not None:
            raise self.error
        return self.payload


def test_leer_rango_devuelve_filas_tal_cual() -> None:
    rows = [["8", "24/02/2026", " biloxi ", "Azufre"], [], ["9"]]
    service = _FakeService({"range": "Programa!A2:J1000", "values": rows})
    tokens: list[str] = []

    def factory(token: str):
        tokens.append(token)
        return service

    lector = LectorRangoSheets(service_factory=factory)
    result = lector.leer_rango("tok-123", "ABC123", "Programa!A2:J1000")

    assert result == rows
    assert tokens == ["tok-123"]
    assert service.calls == [{"spreadsheetId": "ABC123", "range": "Programa!A2:J1000"}]


def test_leer_rango_sin_values_devuelve_lista_vacia() -> None:
    lector = LectorRangoSheets(service_factory=lambda _t: _FakeService({"range": "Programa!A2:J1000"}))

    assert lector.leer_rango("tok", "ABC123", "Programa!A2:J1000") == []


def test_error_http_es_error_de_lectura_fatal() -> None:
    resp = httplib2.Response({"status": "403"})
    error = HttpError(resp, b'{"error": {"message": "The caller does not have permission"}}')
    lector = LectorRangoSheets(service_factory=lambda _t: _FakeService(error=error))

    with pytest.raises(ErrorLectura) as exc:
        lector.leer_rango("tok", "ABC123", "Programa!A2:J1000")

    assert "Google Sheets API error 403" in str(exc.value)
    assert "does not have permission" in str(exc.value)


def test_construir_rango_con_limite_fijo() -> None:
    assert construir_rango("Programa", 2) == "Programa!A2:J1000"
    assert construir_rango("Programa", 5, 300) == "Programa!A5:J300"


def test_construir_rango_cita_hojas_con_espacios() -> None:
    assert construir_rango("Programa 2026", 2) == "'Programa 2026'!A2:J1000"
    assert construir_rango("Rancho's", 2) == "'Rancho''s'!A2:J1000"


@pytest.mark.parametrize(
    "entrada, esperado",
    [
        ("https://docs.google.com/spreadsheets/d/1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms/edit#gid=0",
         "1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms"),
        ("  1BxiMVs0XRA5nFMd_KvBd-Bz  ", "1BxiMVs0XRA5nFMd_KvBd-Bz"),
        ("corto", None),
        ("https://example.com/otra/cosa", None),
        ("", None),
        (None, None),
    ],
)
def test_extraer_spreadsheet_id(entrada, esperado) -> None:
    assert extraer_spreadsheet_id(entrada) == esperado


def test_url_spreadsheet() -> None:
    assert url_spreadsheet("ABC123") == "https://docs.google.com/spreadsheets/d/ABC123/edit"
    assert url_spreadsheet("") == ""
