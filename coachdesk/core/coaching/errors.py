"""
Error taxonomy for coaching operations.

Every failure a repository can raise derives from CoachingError so the API
layer can translate the whole family into HTTP responses in one place.
"""


class CoachingError(Exception):
    """Base class for domain failures surfaced to the caller."""
    pass


class UnauthenticatedError(CoachingError):
    """Raised when no caller identity could be resolved."""
    pass


class NotFoundOrAccessDeniedError(CoachingError):
    """
    Raised when a record is missing or owned by another coach.

    The two cases share one error so a response never reveals whether
    another coach's record exists.
    """
    pass


class InvalidStateError(CoachingError):
    """Raised when the target resource's state forbids the action."""
    pass


class FormNotFoundOrInactiveError(InvalidStateError):
    """Raised when a public submission targets a missing or inactive form."""
    pass


class ConflictError(CoachingError):
    """Raised when a write collides with existing data."""
    pass


class SlugTakenError(ConflictError):
    """Raised when a public page slug already belongs to another coach."""
    pass


class StaleRecordError(ConflictError):
    """Raised when a record changed between the read and the write of an update."""
    pass


class InvalidSubmissionError(CoachingError, ValueError):
    """
    Raised when form responses don't match the form's declared fields.

    Carries the individual problems so the API can report all of them at once.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("; ".join(problems))


class InvalidRecordError(CoachingError, ValueError):
    """Raised when a record's values break a domain rule (empty name, negative price, ...)."""
    pass
