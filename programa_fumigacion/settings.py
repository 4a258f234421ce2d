from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    # App
    APP_NAME: str = os.environ.get("APP_NAME", "Programa Fumigacion Sync")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Storage
    INSTANCE_DIR: Path = Path(os.environ.get("INSTANCE_DIR", "instance")).resolve()
    DATABASE_URL: str = os.environ.get(
        "DATABASE_URL", f"sqlite:///{(Path('instance') / 'programa.sqlite').as_posix()}"
    )

    # Google service account: full JSON in the env var, or a path to the JSON file.
    GOOGLE_SERVICE_ACCOUNT_JSON: str = os.environ.get("GOOGLE_SERVICE_ACCOUNT_JSON", "")
    GOOGLE_CREDENTIALS_FILE: str = os.environ.get("GOOGLE_CREDENTIALS_FILE", "credentials.json")

    # Programa sheet layout
    SHEETS_DEFAULT_SHEET_NAME: str = os.environ.get("SHEETS_DEFAULT_SHEET_NAME", "Programa")
    SHEETS_DATA_START_ROW: int = int(os.environ.get("SHEETS_DATA_START_ROW", "2"))
    SHEETS_END_ROW: int = int(os.environ.get("SHEETS_END_ROW", "1000"))
    SHEETS_BATCH_SIZE: int = int(os.environ.get("SHEETS_BATCH_SIZE", "100"))

    def __post_init__(self) -> None:
        db_url_env_set = os.environ.get("DATABASE_URL") is not None

        object.__setattr__(self, "INSTANCE_DIR", Path(self.INSTANCE_DIR).resolve())

        # Without an explicit DATABASE_URL the DB always lives inside INSTANCE_DIR.
        db = str(self.DATABASE_URL or "").strip()
        if not db or (not db_url_env_set and db == type(self).DATABASE_URL):
            abs_db = (self.INSTANCE_DIR / "programa.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        # Relative SQLite paths are resolved against the project root, not the cwd.
        if db.startswith("sqlite:///") and not db.startswith("sqlite:////"):
            path_part = db[len("sqlite:///") :]
            if "?" in path_part:
                path_part = path_part.split("?", 1)[0]

            p = Path(path_part)
            if path_part and not p.is_absolute():
                project_root = Path(__file__).resolve().parents[1]
                abs_path = (project_root / p).resolve()
                object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_path.as_posix()}")

    def ensure_instance(self) -> None:
        self.INSTANCE_DIR.mkdir(parents=True, exist_ok=True)

    def credencial_servicio(self) -> str | None:
        """JSON de la Service Account: primero la variable de entorno, luego el archivo."""
        raw = (self.GOOGLE_SERVICE_ACCOUNT_JSON or "").strip()
        if raw:
            return raw

        creds_file = Path(self.GOOGLE_CREDENTIALS_FILE or "")
        if str(creds_file) and creds_file.is_file():
            contenido = creds_file.read_text(encoding="utf-8").strip()
            return contenido or None
        return None
