from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ProgramaAplicacion(Base):
    __tablename__ = "fum_programa"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    almacen_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    semana: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # ISO date string (YYYY-MM-DD)
    fecha: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    variedad: Mapped[str] = mapped_column(String(80), nullable=False, default="")
    # Always derived from variedad; never edited by hand.
    sectores: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    producto_nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    dosis_200l: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    tambos: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metodo: Mapped[str] = mapped_column(String(80), nullable=False, default="FOLIAR")

    objetivo: Mapped[str | None] = mapped_column(Text, nullable=True)
    estatus: Mapped[str] = mapped_column(String(20), nullable=False, default="programada")

    # Conflict key for the Sheets UPSERT: "<spreadsheet_id>_<fila>"
    sheets_sync_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    sheets_range: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    sheets_synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class ConfigSheets(Base):
    __tablename__ = "fum_sheets_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    almacen_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    spreadsheet_id: Mapped[str] = mapped_column(String(255), nullable=False)
    sheet_name: Mapped[str] = mapped_column(String(120), nullable=False, default="Programa")
    data_start_row: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sync_rows: Mapped[int | None] = mapped_column(Integer, nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
