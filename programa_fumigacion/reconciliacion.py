from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from programa_fumigacion.db import session_scope
from programa_fumigacion.parser_filas import RegistroPrograma
from programa_fumigacion.repos import ProgramaRepo

logger = logging.getLogger(__name__)

T = TypeVar("T")

TAMANO_LOTE_DEFAULT = 100


def en_lotes(items: Sequence[T], tamano: int) -> Iterator[list[T]]:
    if tamano < 1:
        raise ValueError("tamano debe ser >= 1")
    for i in range(0, len(items), tamano):
        yield list(items[i : i + tamano])


@dataclass
class ResultadoEscritura:
    escritas: int = 0
    errores: list[str] = field(default_factory=list)


class EscritorReconciliacion:
    """UPSERT por sheets_sync_id, un lote por transacción.

    Un lote que falla se revierte solo y se reporta como ``Lote K: ...``; los
    siguientes lotes se intentan igual.
    """

    def __init__(self, session_factory, tamano_lote: int = TAMANO_LOTE_DEFAULT):
        self._session_factory = session_factory
        self.tamano_lote = int(tamano_lote)

    def escribir_lote(self, lote: list[RegistroPrograma]) -> int:
        with session_scope(self._session_factory) as session:
            return ProgramaRepo(session).upsert_many(lote)

    def escribir(self, registros: Sequence[RegistroPrograma]) -> ResultadoEscritura:
        resultado = ResultadoEscritura()
        for n, lote in enumerate(en_lotes(registros, self.tamano_lote), start=1):
            try:
                escritas = self.escribir_lote(lote)
            except SQLAlchemyError as e:
                logger.warning("Lote %s (%s filas) falló: %s", n, len(lote), e)
                resultado.errores.append(f"Lote {n}: {e}")
                continue
            # The upsert does not tell inserts from updates; the caller counts every row as created.
            resultado.escritas += escritas
            logger.info("Lote %s: %s filas escritas", n, escritas)
        return resultado
