"""Domain errors raised by the stores and mapped to redirects by the routes."""


class NotesError(Exception):
    """Base class for application errors."""


class DuplicateIdentity(NotesError):
    """A user with this email or username already exists."""


class InvalidCredentials(NotesError):
    """Login failed. Deliberately does not say why."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class InvalidToken(NotesError):
    pass


class NotFound(NotesError):
    """The note does not exist or is not owned by the caller."""


class ValidationError(NotesError):
    pass


class StoreUnavailable(NotesError):
    """The database or the media store failed."""
