"""
Intercambio de la credencial de Service Account por un access token de Google.

La firma del JWT (RS256) y el intercambio OAuth2 ``jwt-bearer`` los hace
``google-auth``; este módulo sólo valida la credencial y traduce los errores.
La Service Account necesita acceso de Lector al Sheets (compartirlo con su
``client_email``).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from programa_fumigacion.errores import ErrorAutenticacion

logger = logging.getLogger(__name__)

SCOPES_LECTURA = ["https://www.googleapis.com/auth/spreadsheets.readonly"]

ProveedorToken = Callable[[str], str]


def cargar_credencial(credencial_json: str) -> dict[str, Any]:
    try:
        data = json.loads(credencial_json)
    except (TypeError, ValueError) as e:
        raise ErrorAutenticacion("GOOGLE_SERVICE_ACCOUNT_JSON inválido: no es JSON válido") from e

    if not isinstance(data, dict) or not data.get("client_email") or not data.get("private_key"):
        raise ErrorAutenticacion("GOOGLE_SERVICE_ACCOUNT_JSON debe tener client_email y private_key")
    return data


def obtener_token_acceso(credencial_json: str) -> str:
    """Devuelve un bearer token de sólo lectura para la API de Sheets (válido ~1 hora)."""
    info = cargar_credencial(credencial_json)

    try:
        creds = service_account.Credentials.from_service_account_info(info, scopes=SCOPES_LECTURA)
    except (ValueError, KeyError) as e:
        raise ErrorAutenticacion(f"Credencial de Service Account inválida: {e}") from e

    try:
        creds.refresh(Request())
    except GoogleAuthError as e:
        raise ErrorAutenticacion(f"Google auth falló: {e}") from e

    if not creds.token:
        raise ErrorAutenticacion("Google auth falló: respuesta sin access_token")

    logger.info("Token de Google obtenido para %s", info["client_email"])
    return str(creds.token)
