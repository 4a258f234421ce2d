from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from programa_fumigacion.parser_filas import (
    FilaCruda,
    RechazoFila,
    RegistroPrograma,
    parsear_decimal,
    parsear_entero,
    parsear_fecha,
    parsear_fila,
)

from conftest import SYNCED_AT


def test_fila_de_ejemplo_produce_registro_completo(contexto) -> None:
    row = ["8", "24/02/2026", "biloxi", "Azufre", "0.5", "", "", "", "FOLIAR", "5"]

    registro = parsear_fila(row, 3, contexto)

    assert isinstance(registro, RegistroPrograma)
    assert registro.semana == 8
    assert registro.fecha == "2026-02-24"
    assert registro.variedad == "BILOXI"
    assert list(registro.sectores) == ["1A", "1B", "1C", "1D", "1E", "2A", "2B", "2C", "2D", "2E"]
    assert registro.producto_nombre == "Azufre"
    assert registro.dosis_200l == Decimal("0.5")
    assert registro.tambos == 5
    assert registro.metodo == "FOLIAR"
    assert registro.objetivo is None
    assert registro.estatus == "programada"
    assert registro.sheets_sync_id == "ABC123_3"
    assert registro.sheets_range == "Programa!A3"
    assert registro.sheets_synced_at == SYNCED_AT
    assert registro.almacen_id == "alm-1"


def test_fila_corta_se_completa_con_celdas_vacias(contexto) -> None:
    registro = parsear_fila(["2", "1/3/2026", "AZRA 4S", "Cobre"], 10, contexto)

    assert isinstance(registro, RegistroPrograma)
    assert registro.fecha == "2026-03-01"
    assert registro.dosis_200l == Decimal("0")
    assert registro.tambos == 0
    assert registro.metodo == "FOLIAR"


@pytest.mark.parametrize("row", [[], ["", "  ", ""], [" "] * 10, None])
def test_fila_vacia_se_omite_sin_error(row, contexto) -> None:
    assert parsear_fila(row, 5, contexto) is None


def test_fila_separadora_sin_variedad_ni_producto_se_omite(contexto) -> None:
    assert parsear_fila(["SEMANA 9", "", "", "", "", "", "", "", "", ""], 7, contexto) is None


def test_fila_sin_producto_se_rechaza(contexto) -> None:
    resultado = parsear_fila(["8", "24/02/2026", "BILOXI", "  "], 4, contexto)

    assert isinstance(resultado, RechazoFila)
    assert resultado.fila == 4
    assert resultado.mensaje == "Fila 4: sin producto, omitida"


def test_fecha_invalida_se_rechaza_con_texto_original(contexto) -> None:
    resultado = parsear_fila(["8", "febrero 24", "BILOXI", "Azufre"], 9, contexto)

    assert isinstance(resultado, RechazoFila)
    assert resultado.mensaje == 'Fila 9: fecha inválida "febrero 24", omitida'


def test_fecha_inexistente_en_calendario_se_rechaza(contexto) -> None:
    resultado = parsear_fila(["8", "31/02/2026", "BILOXI", "Azufre"], 9, contexto)

    assert isinstance(resultado, RechazoFila)


def test_filtro_de_semana_omite_otras_semanas_sin_error(contexto) -> None:
    ctx = replace(contexto, filtro_semana=5)

    assert parsear_fila(["6", "24/02/2026", "BILOXI", "Azufre"], 3, ctx) is None
    assert isinstance(parsear_fila(["5", "24/02/2026", "BILOXI", "Azufre"], 4, ctx), RegistroPrograma)


def test_filtro_de_semana_no_oculta_filas_invalidas_de_esa_semana(contexto) -> None:
    ctx = replace(contexto, filtro_semana=5)

    assert isinstance(parsear_fila(["5", "mañana", "BILOXI", "Azufre"], 4, ctx), RechazoFila)


def test_numeros_no_parseables_se_vuelven_cero(contexto) -> None:
    registro = parsear_fila(["sem", "2026-02-24", "BILOXI", "Azufre", "n/a", "", "", "", "drench", "-"], 3, contexto)

    assert isinstance(registro, RegistroPrograma)
    assert registro.semana == 0
    assert registro.dosis_200l == Decimal("0")
    assert registro.tambos == 0
    assert registro.metodo == "DRENCH"


def test_variedad_desconocida_no_rechaza_la_fila(contexto) -> None:
    registro = parsear_fila(["8", "24/02/2026", "blueray", "Azufre"], 3, contexto)

    assert isinstance(registro, RegistroPrograma)
    assert registro.variedad == "BLUERAY"
    assert registro.sectores == ()


def test_misma_fila_mismo_sync_id_entre_corridas(contexto) -> None:
    row = ["8", "24/02/2026", "biloxi", "Azufre"]
    otra_corrida = replace(contexto, synced_at=SYNCED_AT.replace(hour=18))

    assert parsear_fila(row, 12, contexto).sheets_sync_id == parsear_fila(row, 12, otra_corrida).sheets_sync_id


@pytest.mark.parametrize(
    "texto, esperado",
    [
        ("24/02/2026", "2026-02-24"),
        ("1/3/2026", "2026-03-01"),
        (" 05/11/2025 ", "2025-11-05"),
        ("2026-02-24", "2026-02-24"),
        ("29/02/2024", "2024-02-29"),
        ("29/02/2026", None),
        ("2026-13-01", None),
        ("24-02-2026", None),
        ("24/02/26", None),
        ("", None),
        (None, None),
    ],
)
def test_parsear_fecha(texto, esperado) -> None:
    assert parsear_fecha(texto) == esperado


@pytest.mark.parametrize("dia, mes, anio", [(1, 1, 2026), (31, 12, 1999), (29, 2, 2028), (15, 7, 2030)])
def test_parsear_fecha_conserva_dia_mes_anio(dia: int, mes: int, anio: int) -> None:
    iso = parsear_fecha(f"{dia:02d}/{mes:02d}/{anio}")

    d = date.fromisoformat(iso)
    assert (d.day, d.month, d.year) == (dia, mes, anio)


@pytest.mark.parametrize("texto, esperado", [("8", 8), ("08", 8), ("8 sem", 8), ("8.7", 8), ("", 0), ("x8", 0)])
def test_parsear_entero_permisivo(texto: str, esperado: int) -> None:
    assert parsear_entero(texto) == esperado


@pytest.mark.parametrize(
    "texto, esperado",
    [("0.5", "0.5"), ("2", "2"), (".25", "0.25"), ("1.5 L", "1.5"), ("abc", "0"), ("", "0"), ("-1", "0")],
)
def test_parsear_decimal_permisivo(texto: str, esperado: str) -> None:
    assert parsear_decimal(texto) == Decimal(esperado)


def test_fila_cruda_nombra_columnas_e_ignora_sobrantes() -> None:
    fila = FilaCruda.desde_celdas(["8", "24/02/2026", "BILOXI", "Azufre", "0.5", "10", "4", "6", "FOLIAR", "5", "extra"])

    assert fila.producto == "Azufre"
    assert fila.metodo == "FOLIAR"
    assert fila.tambos == "5"
    assert len(fila) == 10
