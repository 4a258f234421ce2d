from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from programa_fumigacion.models import ConfigSheets, ProgramaAplicacion
from programa_fumigacion.parser_filas import RegistroPrograma

# Everything except the identity and the conflict key gets overwritten: Sheets always wins.
_COLUMNAS_SOBRESCRITAS = (
    "almacen_id",
    "semana",
    "fecha",
    "variedad",
    "sectores",
    "producto_nombre",
    "dosis_200l",
    "tambos",
    "metodo",
    "objetivo",
    "estatus",
    "sheets_range",
    "sheets_synced_at",
    "updated_at",
)

_INSERTS_CON_UPSERT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class ProgramaRepo:
    def __init__(self, session: Session):
        self.session = session

    def upsert_many(self, registros: list[RegistroPrograma]) -> int:
        if not registros:
            return 0

        # A repeated sync key inside one batch keeps the last occurrence.
        dedup: dict[str, RegistroPrograma] = {}
        for r in registros:
            dedup[r.sheets_sync_id] = r
        registros = list(dedup.values())

        now = datetime.utcnow()
        bind = self.session.get_bind()
        dialect = getattr(getattr(bind, "dialect", None), "name", "")
        insert = _INSERTS_CON_UPSERT.get(dialect)

        if insert is not None:
            rows = [{**r.to_row(), "updated_at": now} for r in registros]
            stmt = insert(ProgramaAplicacion).values(rows)
            stmt = stmt.on_conflict_do_update(
                index_elements=[ProgramaAplicacion.sheets_sync_id],
                set_={col: getattr(stmt.excluded, col) for col in _COLUMNAS_SOBRESCRITAS},
            )
            self.session.execute(stmt)
            return len(registros)

        # Generic fallback
        keys = [r.sheets_sync_id for r in registros]
        existing = self.get_by_sync_ids(keys)

        for r in registros:
            values = {**r.to_row(), "updated_at": now}
            row = existing.get(r.sheets_sync_id)
            if row is None:
                self.session.add(ProgramaAplicacion(**values))
            else:
                for col in _COLUMNAS_SOBRESCRITAS:
                    setattr(row, col, values[col])

        return len(registros)

    def get_by_sync_ids(self, keys: list[str]) -> dict[str, ProgramaAplicacion]:
        if not keys:
            return {}
        rows = (
            self.session.execute(select(ProgramaAplicacion).where(ProgramaAplicacion.sheets_sync_id.in_(keys)))
            .scalars()
            .all()
        )
        return {r.sheets_sync_id: r for r in rows}

    def list_por_almacen(self, almacen_id: str, semana: int | None = None, limit: int = 1000) -> list[ProgramaAplicacion]:
        stmt = select(ProgramaAplicacion).where(ProgramaAplicacion.almacen_id == almacen_id)
        if semana is not None:
            stmt = stmt.where(ProgramaAplicacion.semana == int(semana))
        stmt = stmt.order_by(ProgramaAplicacion.fecha.asc(), ProgramaAplicacion.id.asc()).limit(int(limit))
        return list(self.session.execute(stmt).scalars().all())

    def count(self) -> int:
        return int(self.session.execute(select(func.count(ProgramaAplicacion.id))).scalar_one())


class ConfigSheetsRepo:
    def __init__(self, session: Session):
        self.session = session

    def obtener(self, almacen_id: str) -> ConfigSheets | None:
        stmt = select(ConfigSheets).where(ConfigSheets.almacen_id == almacen_id, ConfigSheets.activo.is_(True))
        return self.session.execute(stmt).scalar_one_or_none()

    def guardar(self, almacen_id: str, *, spreadsheet_id: str, sheet_name: str, data_start_row: int) -> ConfigSheets:
        row = self.session.execute(
            select(ConfigSheets).where(ConfigSheets.almacen_id == almacen_id)
        ).scalar_one_or_none()
        if row is None:
            row = ConfigSheets(almacen_id=almacen_id, spreadsheet_id=spreadsheet_id)
            self.session.add(row)

        row.spreadsheet_id = spreadsheet_id
        row.sheet_name = sheet_name
        row.data_start_row = int(data_start_row)
        row.activo = True
        row.updated_at = datetime.utcnow()
        self.session.flush()
        return row

    def marcar_sincronizado(self, almacen_id: str, spreadsheet_id: str, *, synced_at: datetime, filas: int) -> int:
        stmt = (
            update(ConfigSheets)
            .where(ConfigSheets.almacen_id == almacen_id, ConfigSheets.spreadsheet_id == spreadsheet_id)
            .values(last_synced_at=synced_at, last_sync_rows=int(filas), updated_at=datetime.utcnow())
        )
        return int(self.session.execute(stmt).rowcount or 0)
