"""Map ledger errors onto HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException

from moneyapi import errors

_STATUS_BY_ERROR: list[tuple[type[errors.LedgerError], int]] = [
    (errors.DuplicateAccountError, 409),
    (errors.ValidationError, 400),
    (errors.NotFoundError, 404),
    (errors.IntegrityFault, 409),
    (errors.StorageFault, 503),
]


def to_http(exc: errors.LedgerError) -> HTTPException:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return HTTPException(status_code=status_code, detail=exc.reason)
    return HTTPException(status_code=500, detail=exc.reason)
