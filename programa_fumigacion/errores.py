from __future__ import annotations


class ErrorSync(RuntimeError):
    """Error fatal de una sincronización: aborta la corrida completa."""


class ErrorConfiguracion(ErrorSync):
    """Faltan identificadores o credenciales; no se intenta ninguna llamada de red."""


class ErrorAutenticacion(ErrorSync):
    """Credencial mal formada o intercambio de token rechazado por Google."""


class ErrorLectura(ErrorSync):
    """La API de Sheets (o el archivo local) no devolvió el rango."""
