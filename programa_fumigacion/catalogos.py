"""
Catálogos de normalización del programa de fumigación.

La tabla variedad -> sectores es la única fuente de verdad de la topología del
rancho: tanto los formularios como la sincronización con Sheets la consultan a
través de ``CATALOGO``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

METODO_DEFAULT = "FOLIAR"

_VARIEDAD_SECTORES: dict[str, tuple[str, ...]] = {
    "BILOXI": ("1A", "1B", "1C", "1D", "1E", "2A", "2B", "2C", "2D", "2E"),
    "AZRA 3S Y 5S": ("3A", "3B", "3C", "5A", "5B", "5C"),
    "AZRA 4S": ("4A", "4B", "4C"),
    "AZRA 6S Y 7S": ("6A", "6B", "6C", "6D", "7A", "7B", "7C", "7D", "7E"),
    "AZRA 1ER": ("1A", "1B", "1C"),
    "GENERAL": (),
    "MAX": (),
}

_VARIEDAD_ALIASES: dict[str, str] = {
    "AZRA 3 Y 5": "AZRA 3S Y 5S",
    "AZRA 3S5S": "AZRA 3S Y 5S",
    "AZRA 6 Y 7": "AZRA 6S Y 7S",
    "AZRA 6S7S": "AZRA 6S Y 7S",
    "AZRA1ER": "AZRA 1ER",
    "AZRA 1": "AZRA 1ER",
}

_METODOS: dict[str, str] = {
    "TOMA DOMICILIARIA": "TOMA DOMICILIARIA",
    "FOLIAR": "FOLIAR",
    "DRENCH": "DRENCH",
    "INMERSIÓN": "INMERSIÓN",
    "INMERSION": "INMERSIÓN",
    "GENERAL": "GENERAL",
    "PODA": "PODA",
    "APORTE ESPECIAL (RIEGO)": "APORTE ESPECIAL (RIEGO)",
    "APORTE ESPECIAL": "APORTE ESPECIAL (RIEGO)",
    "RIEGO": "APORTE ESPECIAL (RIEGO)",
}


def _upper(raw: str | None) -> str:
    return str(raw or "").strip().upper()


@dataclass(frozen=True)
class CatalogoNormalizacion:
    variedad_sectores: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(dict(_VARIEDAD_SECTORES))
    )
    variedad_aliases: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(_VARIEDAD_ALIASES))
    )
    metodos: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(_METODOS)))

    def normalizar_variedad(self, raw: str | None) -> str:
        # Variedades desconocidas pasan tal cual (en mayúsculas).
        upper = _upper(raw)
        return self.variedad_aliases.get(upper, upper)

    def normalizar_metodo(self, raw: str | None) -> str:
        return self.metodos.get(_upper(raw), METODO_DEFAULT)

    def sectores_de_variedad(self, variedad: str) -> tuple[str, ...]:
        return tuple(self.variedad_sectores.get(variedad, ()))

    def es_variedad_conocida(self, variedad: str) -> bool:
        return variedad in self.variedad_sectores

    def variedades(self) -> list[str]:
        return list(self.variedad_sectores.keys())


CATALOGO = CatalogoNormalizacion()


def normalizar_variedad(raw: str | None) -> str:
    return CATALOGO.normalizar_variedad(raw)


def normalizar_metodo(raw: str | None) -> str:
    return CATALOGO.normalizar_metodo(raw)


def sectores_de_variedad(variedad: str) -> tuple[str, ...]:
    return CATALOGO.sectores_de_variedad(variedad)
