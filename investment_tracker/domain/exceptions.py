"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Investment or objective payload is malformed or incomplete"""

    pass


class NotFoundError(DomainException):
    """No investment record exists with the requested identifier"""

    pass


class UpstreamServiceError(DomainException):
    """Rate source or forecasting service failed or returned garbage"""

    pass
