"""Exceptions raised by the client data-access layer."""


class ClientServiceError(RuntimeError):
    """A backend call (database, storage, auth) failed.

    The message carries a descriptive prefix (``Failed to create client: ...``)
    followed by the underlying error text, ready to be shown to the user.
    """


class AuthenticationError(ClientServiceError):
    """A write was attempted without an authenticated actor."""


class LogoValidationError(ClientServiceError):
    """An uploaded logo failed the type, size or dimension checks."""
