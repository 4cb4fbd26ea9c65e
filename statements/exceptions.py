"""
Statement engine errors.

Views translate these into JSON error responses:
    StatementValidationError -> 400
    ItemNotFoundError / ListingNotFoundError -> 404
    StatementLockedError / InvalidStatusTransitionError -> 409
"""


class StatementError(Exception):
    """Base class for every error raised by the statement engine."""


# Configuration -------------------------------------------------------------

class ListingNotFoundError(StatementError, LookupError):
    """A listing id has no financial configuration."""

    def __init__(self, property_id):
        self.property_id = property_id
        super().__init__(f"Listing {property_id} not found")


# Validation ----------------------------------------------------------------

class StatementValidationError(StatementError, ValueError):
    """Input rejected before any state was changed."""


class InvalidPeriodError(StatementValidationError):
    pass


class DuplicateReservationError(StatementValidationError):
    pass


# State ---------------------------------------------------------------------

class StatementLockedError(StatementError):
    """The statement's status does not allow the requested edit."""

    def __init__(self, status, operation):
        self.status = status
        self.operation = operation
        super().__init__(f"Cannot {operation.replace('_', ' ')} on a {status} statement")


class InvalidStatusTransitionError(StatementError):

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from {current} to {target}")


# Lookup --------------------------------------------------------------------

class ItemNotFoundError(StatementError, LookupError):
    pass
