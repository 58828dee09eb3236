"""Translation of domain exceptions into HTTP errors"""

from fastapi import HTTPException

from crediario.domain.exceptions import (
    AlreadySettledError,
    CustomerNotEligibleError,
    CustomerValidationError,
    DomainException,
    EntityNotFoundError,
    InconsistentStateError,
    InvalidAmountError,
    NoteValidationError,
    NotInstallmentBasedError,
    OverpaymentError,
    PersistenceError,
)

# Checked in order; subclasses must come before their bases
_STATUS_CODES = [
    (EntityNotFoundError, 404),
    (OverpaymentError, 422),
    (InvalidAmountError, 422),
    (NoteValidationError, 422),
    (CustomerValidationError, 422),
    (AlreadySettledError, 409),
    (NotInstallmentBasedError, 409),
    (CustomerNotEligibleError, 403),
    (InconsistentStateError, 500),
    (PersistenceError, 503),
]


def status_code_for(error: DomainException) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 400


def to_http_exception(error: DomainException) -> HTTPException:
    status_code = status_code_for(error)

    if isinstance(error, OverpaymentError):
        detail = {
            "message": str(error),
            "requested_cents": error.requested_cents,
            "due_cents": error.due_cents,
        }
    elif status_code == 500:
        detail = "Stored data is inconsistent; operation aborted"
    elif status_code == 503:
        detail = "Note store unavailable"
    else:
        detail = str(error)

    return HTTPException(status_code=status_code, detail=detail)
