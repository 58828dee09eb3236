"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException):
    """Payment amount is zero, negative, or otherwise unusable"""

    pass


class OverpaymentError(InvalidAmountError):
    """Requested amount exceeds what is due and the policy rejects it"""

    def __init__(self, requested_cents: int, due_cents: int):
        super().__init__(f"Requested {requested_cents} cents but only {due_cents} cents are due")
        self.requested_cents = requested_cents
        self.due_cents = due_cents


class AlreadySettledError(DomainException):
    """Installment or note has nothing left to pay"""

    pass


class EntityNotFoundError(DomainException):
    """Referenced id does not exist in the supplied snapshot"""

    pass


class CustomerNotFoundError(EntityNotFoundError):
    pass


class NoteNotFoundError(EntityNotFoundError):
    pass


class InstallmentNotFoundError(EntityNotFoundError):
    pass


class PaymentNotFoundError(EntityNotFoundError):
    pass


class NotInstallmentBasedError(DomainException):
    """Cascading requested on a note that is not split into installments"""

    pass


class InconsistentStateError(DomainException):
    """A reconciliation invariant does not hold; treat as data corruption"""

    pass


class NoteValidationError(DomainException):
    """Note registration or edit data is invalid"""

    pass


class CustomerValidationError(DomainException):
    """Customer registration data is invalid"""

    pass


class CustomerNotEligibleError(DomainException):
    """Customer may not receive new notes without a manager override"""

    pass


class PersistenceError(DomainException):
    """Note store returned an error or is unavailable"""

    pass
