"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class LedgerValidationError(DomainException):
    """Input rejected before any persistence call"""

    pass


class EntryNotFoundError(DomainException):
    """Referenced ledger entry or EMI group does not exist"""

    pass


class UserNotFoundError(DomainException):
    """No user registered for the given uid"""

    pass


class EmiConflictError(DomainException):
    """An EMI with the same product name exists with different terms"""

    pass


class AdvisorAPIError(DomainException):
    """Generative advice service returned an error or is unavailable"""

    pass


class BudgetlyAPIError(DomainException):
    """Budgetly HTTP API returned an unexpected error or is unreachable"""

    pass
