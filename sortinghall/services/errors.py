from fastapi import HTTPException


class HallError(Exception):
    """Basisklasse für fachliche Fehler der Halle (Meldung ist für Bediener lesbar)."""

    status_code = 400


class HallNotFoundError(HallError):
    """Reihe, Tisch oder Ruf existiert nicht."""

    status_code = 404


class HallPreconditionError(HallError):
    """Vorbedingung verletzt (Reihe voll/leer, kein Artikel, Reihe nicht leer)."""

    status_code = 409


def to_http_exception(exc: HallError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))
