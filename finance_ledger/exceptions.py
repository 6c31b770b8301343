"""Jerarquía de errores del ledger.

Cada operación convierte sus fallas en una de estas clases; la capa HTTP
las traduce a una respuesta con un mensaje corto (nunca el texto crudo de
la base de datos).
"""


class LedgerError(Exception):
    """Base de todos los rechazos del servicio."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    """La entidad no existe o no pertenece al workspace del usuario."""

    status_code = 404


class LedgerValidationError(LedgerError):
    """Datos inválidos: monto <= 0, referencia faltante, sin cuenta destino."""

    status_code = 400


class PreconditionError(LedgerError):
    """El estado actual no permite la operación."""

    status_code = 409


class DuplicateNameError(PreconditionError):
    """Ya existe una entidad con ese nombre en el mismo ámbito."""


class SystemAccountError(PreconditionError):
    """Intento de modificar la cuenta del sistema."""


class LedgerStorageError(LedgerError):
    """La transacción de base de datos abortó; se hizo rollback."""

    status_code = 500
