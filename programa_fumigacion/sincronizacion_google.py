from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError

from programa_fumigacion.catalogos import CATALOGO, CatalogoNormalizacion
from programa_fumigacion.db import session_scope
from programa_fumigacion.errores import ErrorConfiguracion, ErrorSync
from programa_fumigacion.google_auth import ProveedorToken, obtener_token_acceso
from programa_fumigacion.google_sheets import LectorRango, LectorRangoSheets, construir_rango, extraer_spreadsheet_id
from programa_fumigacion.parser_filas import ContextoParseo, RechazoFila, RegistroPrograma, parsear_fila
from programa_fumigacion.reconciliacion import EscritorReconciliacion
from programa_fumigacion.repos import ConfigSheetsRepo
from programa_fumigacion.settings import Settings

logger = logging.getLogger(__name__)

MSG_SIN_DATOS = "El Sheets no tiene datos en el rango especificado"
MSG_SIN_FILAS_VALIDAS = "No se encontraron filas válidas para importar"


class EstadoSync(str, Enum):
    CONFIGURADO = "configurado"
    AUTENTICANDO = "autenticando"
    LEYENDO = "leyendo"
    PARSEANDO = "parseando"
    SIMULACION = "simulacion"
    ESCRIBIENDO = "escribiendo"
    TERMINADO = "terminado"
    FALLIDO = "fallido"


def _entero_opcional(data: dict, key: str) -> int | None:
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ErrorConfiguracion(f"{key} debe ser un número entero")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ErrorConfiguracion(f"{key} debe ser un número entero") from e


_VERDADEROS = {"1", "true", "si", "sí", "yes", "on"}
_FALSOS = {"", "0", "false", "no", "off"}


def _booleano(data: dict, key: str) -> bool:
    raw = data.get(key)
    if raw is None or isinstance(raw, bool):
        return bool(raw)
    if isinstance(raw, (int, float)):
        return raw != 0
    texto = str(raw).strip().lower()
    if texto in _VERDADEROS:
        return True
    if texto in _FALSOS:
        return False
    raise ErrorConfiguracion(f"{key} debe ser true o false")


@dataclass(frozen=True)
class SolicitudSync:
    almacen_id: str
    spreadsheet_id: str
    sheet_name: str = "Programa"
    data_start_row: int = 2
    dry_run: bool = False
    # Only rows whose column A equals this week are imported.
    filter_semana: int | None = None

    @classmethod
    def desde_dict(cls, data: dict[str, Any] | None) -> "SolicitudSync":
        data = data or {}
        data_start_row = _entero_opcional(data, "data_start_row")
        return cls(
            almacen_id=str(data.get("almacen_id") or "").strip(),
            spreadsheet_id=str(data.get("spreadsheet_id") or "").strip(),
            sheet_name=str(data.get("sheet_name") or "Programa").strip() or "Programa",
            data_start_row=2 if data_start_row is None else data_start_row,
            dry_run=_booleano(data, "dry_run"),
            filter_semana=_entero_opcional(data, "filter_semana"),
        )


@dataclass
class ResultadoSync:
    synced_at: datetime
    creadas: int = 0
    # Always 0: the batch upsert does not report insert vs update.
    actualizadas: int = 0
    sin_cambios: int = 0
    errores: list[str] = field(default_factory=list)
    total_filas_leidas: int = 0
    dry_run: bool = False
    estado: EstadoSync = EstadoSync.CONFIGURADO

    @property
    def fallido(self) -> bool:
        return self.estado is EstadoSync.FALLIDO

    @classmethod
    def de_error(cls, mensaje: str, *, synced_at: datetime | None = None, dry_run: bool = False) -> "ResultadoSync":
        return cls(
            synced_at=synced_at or datetime.now(timezone.utc),
            errores=[mensaje],
            dry_run=dry_run,
            estado=EstadoSync.FALLIDO,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "creadas": self.creadas,
            "actualizadas": self.actualizadas,
            "sin_cambios": self.sin_cambios,
            "errores": list(self.errores),
            "synced_at": self.synced_at.isoformat(),
            "total_filas_leidas": self.total_filas_leidas,
            "dry_run": self.dry_run,
        }


class SincronizadorProgramaSheets:
    """Sincronización unidireccional Sheets -> fum_programa.

    Flujo: validar configuración -> token de Google -> leer rango -> parsear
    filas -> (simulación | UPSERT en lotes) -> actualizar fum_sheets_config.

    ``sincronizar`` nunca lanza: los errores fatales terminan en un
    ResultadoSync con estado FALLIDO y un único mensaje.
    """

    def __init__(
        self,
        session_factory,
        settings: Settings,
        *,
        obtener_token: ProveedorToken | None = None,
        lector: LectorRango | None = None,
        escritor: EscritorReconciliacion | None = None,
        credencial: str | None = None,
        catalogo: CatalogoNormalizacion = CATALOGO,
        reloj: Callable[[], datetime] | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings
        self._obtener_token = obtener_token or obtener_token_acceso
        self._lector = lector or LectorRangoSheets()
        self._escritor = escritor or EscritorReconciliacion(session_factory, settings.SHEETS_BATCH_SIZE)
        self._credencial = credencial
        self._catalogo = catalogo
        self._reloj = reloj or (lambda: datetime.now(timezone.utc))
        self.estado = EstadoSync.CONFIGURADO

    def _transicion(self, estado: EstadoSync) -> None:
        logger.debug("Sync: %s -> %s", self.estado.value, estado.value)
        self.estado = estado

    def solicitud_desde_config(self, almacen_id: str, **overrides: Any) -> SolicitudSync:
        """Arma la solicitud con la configuración guardada del almacén."""
        with session_scope(self._session_factory) as session:
            cfg = ConfigSheetsRepo(session).obtener(almacen_id)
            if cfg is None:
                raise ErrorConfiguracion(f"El almacén {almacen_id} no tiene un Sheets configurado")
            solicitud = SolicitudSync(
                almacen_id=cfg.almacen_id,
                spreadsheet_id=cfg.spreadsheet_id,
                sheet_name=cfg.sheet_name,
                data_start_row=cfg.data_start_row,
            )
        return replace(solicitud, **overrides)

    def sincronizar(self, solicitud: SolicitudSync) -> ResultadoSync:
        resultado = ResultadoSync(synced_at=self._reloj(), dry_run=bool(solicitud.dry_run))
        self.estado = EstadoSync.CONFIGURADO
        try:
            self._ejecutar(solicitud, resultado)
        except ErrorSync as e:
            logger.error("Sincronización fallida en estado %s: %s", self.estado.value, e)
            return self._fallar(resultado, str(e))
        except Exception as e:
            logger.exception("Error inesperado sincronizando %s", solicitud.spreadsheet_id)
            return self._fallar(resultado, str(e) or e.__class__.__name__)

        resultado.estado = self.estado
        return resultado

    def _fallar(self, resultado: ResultadoSync, mensaje: str) -> ResultadoSync:
        self._transicion(EstadoSync.FALLIDO)
        return ResultadoSync.de_error(mensaje, synced_at=resultado.synced_at, dry_run=resultado.dry_run)

    def _validar(self, solicitud: SolicitudSync) -> tuple[str, str]:
        if not solicitud.almacen_id:
            raise ErrorConfiguracion("almacen_id requerido")
        if not solicitud.spreadsheet_id:
            raise ErrorConfiguracion("spreadsheet_id requerido")

        # URLs are reduced to their id; a bare id is used as given.
        spreadsheet_id = solicitud.spreadsheet_id.strip()
        if "/" in spreadsheet_id:
            spreadsheet_id = extraer_spreadsheet_id(spreadsheet_id)
        if not spreadsheet_id:
            raise ErrorConfiguracion(f"spreadsheet_id inválido: {solicitud.spreadsheet_id}")
        if int(solicitud.data_start_row) < 1:
            raise ErrorConfiguracion("data_start_row debe ser >= 1")

        credencial = self._credencial or self._settings.credencial_servicio()
        if not credencial:
            raise ErrorConfiguracion("Secret GOOGLE_SERVICE_ACCOUNT_JSON no configurado")
        return spreadsheet_id, credencial

    def _ejecutar(self, solicitud: SolicitudSync, resultado: ResultadoSync) -> None:
        spreadsheet_id, credencial = self._validar(solicitud)
        hoja = solicitud.sheet_name or self._settings.SHEETS_DEFAULT_SHEET_NAME
        fila_inicio = int(solicitud.data_start_row)

        self._transicion(EstadoSync.AUTENTICANDO)
        token = self._obtener_token(credencial)

        self._transicion(EstadoSync.LEYENDO)
        rango = construir_rango(hoja, fila_inicio, self._settings.SHEETS_END_ROW)
        filas = self._lector.leer_rango(token, spreadsheet_id, rango)
        resultado.total_filas_leidas = len(filas)
        if not filas:
            resultado.errores.append(MSG_SIN_DATOS)
            self._transicion(EstadoSync.TERMINADO)
            return

        self._transicion(EstadoSync.PARSEANDO)
        contexto = ContextoParseo(
            almacen_id=solicitud.almacen_id,
            spreadsheet_id=spreadsheet_id,
            hoja=hoja,
            synced_at=resultado.synced_at,
            filtro_semana=solicitud.filter_semana,
            catalogo=self._catalogo,
        )
        registros, rechazos = self.parsear_filas(filas, contexto, fila_inicio)
        resultado.errores.extend(r.mensaje for r in rechazos)

        if not registros:
            resultado.errores.append(MSG_SIN_FILAS_VALIDAS)
            self._transicion(EstadoSync.TERMINADO)
            return

        if solicitud.dry_run:
            self._transicion(EstadoSync.SIMULACION)
            resultado.creadas = len(registros)
            resultado.dry_run = True
            logger.info("Simulación: %s filas se importarían en %s", len(registros), solicitud.almacen_id)
            self._transicion(EstadoSync.TERMINADO)
            return

        self._transicion(EstadoSync.ESCRIBIENDO)
        escritura = self._escritor.escribir(registros)
        resultado.creadas += escritura.escritas
        resultado.errores.extend(escritura.errores)

        self._transicion(EstadoSync.TERMINADO)
        self._registrar_sincronizacion(solicitud.almacen_id, spreadsheet_id, resultado.synced_at, len(registros))
        logger.info(
            "Sincronizadas %s filas en %s (%s errores)",
            resultado.creadas,
            solicitud.almacen_id,
            len(resultado.errores),
        )

    def parsear_filas(
        self, filas: Sequence[Sequence[Any]], contexto: ContextoParseo, fila_inicio: int
    ) -> tuple[list[RegistroPrograma], list[RechazoFila]]:
        registros: list[RegistroPrograma] = []
        rechazos: list[RechazoFila] = []
        desconocidas: set[str] = set()

        for i, celdas in enumerate(filas):
            parsed = parsear_fila(celdas, fila_inicio + i, contexto)
            if parsed is None:
                continue
            if isinstance(parsed, RechazoFila):
                logger.warning(parsed.mensaje)
                rechazos.append(parsed)
                continue
            if parsed.variedad and not contexto.catalogo.es_variedad_conocida(parsed.variedad):
                desconocidas.add(parsed.variedad)
            registros.append(parsed)

        for variedad in sorted(desconocidas):
            logger.warning("Variedad sin sectores en el catálogo: %s", variedad)

        logger.info("Parseadas %s filas: %s válidas, %s rechazadas", len(filas), len(registros), len(rechazos))
        return registros, rechazos

    def _registrar_sincronizacion(self, almacen_id: str, spreadsheet_id: str, synced_at: datetime, filas: int) -> None:
        try:
            with session_scope(self._session_factory) as session:
                ConfigSheetsRepo(session).marcar_sincronizado(
                    almacen_id, spreadsheet_id, synced_at=synced_at, filas=filas
                )
        except SQLAlchemyError as e:
            logger.warning("No se pudo actualizar last_synced_at de %s: %s", almacen_id, e)
