"""
Fachliche Fehler der Zeit- und Urlaubsbuchhaltung.

Services werfen diese Exceptions, main.py übersetzt sie in HTTP-Antworten.
"""


class AccountingError(Exception):
    """Basis für alle fachlichen Fehler."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AccountingError):
    """Pflichtangabe fehlt oder Eingabe ist fachlich ungültig."""

    status_code = 400


class AuthorizationError(AccountingError):
    """Rolle oder Zeitfenster erlauben die Aktion nicht."""

    status_code = 403


class NotFoundError(AccountingError):
    status_code = 404


class ConflictError(AccountingError):
    """Überschneidung mit einem bestehenden Antrag."""

    status_code = 409
