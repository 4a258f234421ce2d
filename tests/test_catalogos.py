from __future__ import annotations

import pytest

from programa_fumigacion.catalogos import (
    CATALOGO,
    normalizar_metodo,
    normalizar_variedad,
    sectores_de_variedad,
)


def test_alias_de_variedad_se_resuelve_y_deriva_sectores() -> None:
    variedad = normalizar_variedad("azra 3 y 5")

    assert variedad == "AZRA 3S Y 5S"
    assert list(sectores_de_variedad(variedad)) == ["3A", "3B", "3C", "5A", "5B", "5C"]


@pytest.mark.parametrize(
    "raw, esperado",
    [
        ("  biloxi ", "BILOXI"),
        ("AZRA 6S7S", "AZRA 6S Y 7S"),
        ("azra1er", "AZRA 1ER"),
        ("Azra 1", "AZRA 1ER"),
    ],
)
def test_normalizar_variedad_aliases(raw: str, esperado: str) -> None:
    assert normalizar_variedad(raw) == esperado


def test_variedad_desconocida_pasa_en_mayusculas_sin_sectores() -> None:
    variedad = normalizar_variedad(" Duke nueva ")

    assert variedad == "DUKE NUEVA"
    assert sectores_de_variedad(variedad) == ()
    assert not CATALOGO.es_variedad_conocida(variedad)


@pytest.mark.parametrize(
    "raw, esperado",
    [
        ("riego", "APORTE ESPECIAL (RIEGO)"),
        ("Aporte especial", "APORTE ESPECIAL (RIEGO)"),
        ("inmersion", "INMERSIÓN"),
        ("INMERSIÓN", "INMERSIÓN"),
        ("drench", "DRENCH"),
        ("", "FOLIAR"),
        (None, "FOLIAR"),
        ("aspersión aérea", "FOLIAR"),
    ],
)
def test_normalizar_metodo(raw, esperado: str) -> None:
    assert normalizar_metodo(raw) == esperado


def test_tablas_del_catalogo_son_de_solo_lectura() -> None:
    with pytest.raises(TypeError):
        CATALOGO.variedad_sectores["NUEVA"] = ("9A",)  # type: ignore[index]
    with pytest.raises(TypeError):
        CATALOGO.metodos["X"] = "Y"  # type: ignore[index]


def test_variedades_sin_sectores_conocidas() -> None:
    assert "GENERAL" in CATALOGO.variedades()
    assert sectores_de_variedad("MAX") == ()
    assert CATALOGO.es_variedad_conocida("MAX")
