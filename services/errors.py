"""Domain errors raised by the service layer and mapped to HTTP codes by the API."""


class NotFoundError(LookupError):
    """Requested record does not exist or does not belong to the caller."""


class AlreadyMarkedTodayError(ValueError):
    """A once-per-day action was already performed today."""


class ValidationError(ValueError):
    """Input is outside the accepted range or vocabulary."""
