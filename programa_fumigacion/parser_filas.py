from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Sequence

from programa_fumigacion.catalogos import CATALOGO, CatalogoNormalizacion

ESTATUS_PROGRAMADA = "programada"

_FECHA_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_FECHA_ISO = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_PREFIJO_ENTERO = re.compile(r"^\d+")
_PREFIJO_DECIMAL = re.compile(r"^(\d+(\.\d*)?|\.\d+)")


class FilaCruda(NamedTuple):
    """Fila del programa por posición de columna (A -> J)."""

    semana: str
    fecha: str
    variedad: str
    producto: str
    dosis: str
    total: str  # calculado en el Sheets, se ignora
    inventario: str  # calculado, se ignora
    necesidad: str  # calculada, se ignora
    metodo: str
    tambos: str

    @classmethod
    def desde_celdas(cls, celdas: Sequence[Any] | None) -> "FilaCruda":
        valores = [str(c).strip() if c is not None else "" for c in list(celdas or [])[: len(cls._fields)]]
        valores += [""] * (len(cls._fields) - len(valores))
        return cls(*valores)

    def vacia(self) -> bool:
        return not any(self)


@dataclass(frozen=True)
class RegistroPrograma:
    """Aplicación programada, lista para UPSERT en fum_programa."""

    almacen_id: str
    semana: int
    fecha: str  # YYYY-MM-DD
    variedad: str
    sectores: tuple[str, ...]
    producto_nombre: str
    dosis_200l: Decimal
    tambos: int
    metodo: str
    objetivo: str | None
    estatus: str
    sheets_sync_id: str
    sheets_range: str
    sheets_synced_at: datetime

    def to_row(self) -> dict[str, Any]:
        return {
            "almacen_id": self.almacen_id,
            "semana": self.semana,
            "fecha": self.fecha,
            "variedad": self.variedad,
            "sectores": list(self.sectores),
            "producto_nombre": self.producto_nombre,
            "dosis_200l": self.dosis_200l,
            "tambos": self.tambos,
            "metodo": self.metodo,
            "objetivo": self.objetivo,
            "estatus": self.estatus,
            "sheets_sync_id": self.sheets_sync_id,
            "sheets_range": self.sheets_range,
            "sheets_synced_at": self.sheets_synced_at,
        }


@dataclass(frozen=True)
class RechazoFila:
    fila: int
    mensaje: str


@dataclass(frozen=True)
class ContextoParseo:
    almacen_id: str
    spreadsheet_id: str
    hoja: str
    synced_at: datetime
    filtro_semana: int | None = None
    catalogo: CatalogoNormalizacion = CATALOGO


def parsear_fecha(texto: str | None) -> str | None:
    """Convierte DD/MM/YYYY (o YYYY-MM-DD) a YYYY-MM-DD; None si no es una fecha válida."""
    clean = str(texto or "").strip()
    if not clean:
        return None

    m = _FECHA_DMY.match(clean)
    if m:
        dia, mes, anio = int(m.group(1)), int(m.group(2)), int(m.group(3))
    else:
        m = _FECHA_ISO.match(clean)
        if not m:
            return None
        anio, mes, dia = int(m.group(1)), int(m.group(2)), int(m.group(3))

    try:
        return date(anio, mes, dia).isoformat()
    except ValueError:
        return None


def parsear_entero(texto: str | None) -> int:
    # "8", "8 sem", "8.5" -> 8; cualquier otra cosa -> 0
    m = _PREFIJO_ENTERO.match(str(texto or "").strip())
    return int(m.group(0)) if m else 0


def parsear_decimal(texto: str | None) -> Decimal:
    m = _PREFIJO_DECIMAL.match(str(texto or "").strip())
    if not m:
        return Decimal("0")
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        return Decimal("0")


def parsear_fila(
    celdas: Sequence[Any] | FilaCruda | None, fila: int, contexto: ContextoParseo
) -> RegistroPrograma | RechazoFila | None:
    """
    Parsea una fila del Sheets.

    Args:
        celdas: celdas tal como las devuelve la API (pueden faltar al final)
        fila: número de fila en el Sheets (base 1)
        contexto: datos compartidos por toda la corrida

    Returns:
        RegistroPrograma si la fila es válida, RechazoFila si debe reportarse,
        None si la fila se omite en silencio (vacía, separador o de otra semana).
    """
    cruda = celdas if isinstance(celdas, FilaCruda) else FilaCruda.desde_celdas(celdas)

    if cruda.vacia():
        return None

    # Fila separadora o título
    if not cruda.variedad and not cruda.producto:
        return None

    if not cruda.producto:
        return RechazoFila(fila, f"Fila {fila}: sin producto, omitida")

    semana = parsear_entero(cruda.semana)
    if contexto.filtro_semana is not None and semana != contexto.filtro_semana:
        return None

    fecha = parsear_fecha(cruda.fecha)
    if fecha is None:
        return RechazoFila(fila, f'Fila {fila}: fecha inválida "{cruda.fecha}", omitida')

    catalogo = contexto.catalogo
    variedad = catalogo.normalizar_variedad(cruda.variedad)

    return RegistroPrograma(
        almacen_id=contexto.almacen_id,
        semana=semana,
        fecha=fecha,
        variedad=variedad,
        sectores=catalogo.sectores_de_variedad(variedad),
        producto_nombre=cruda.producto,
        dosis_200l=parsear_decimal(cruda.dosis),
        tambos=parsear_entero(cruda.tambos),
        metodo=catalogo.normalizar_metodo(cruda.metodo),
        objetivo=None,
        estatus=ESTATUS_PROGRAMADA,
        sheets_sync_id=f"{contexto.spreadsheet_id}_{fila}",
        sheets_range=f"{contexto.hoja}!A{fila}",
        sheets_synced_at=contexto.synced_at,
    )
