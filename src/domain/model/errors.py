"""Domain-level exceptions.

Services raise these errors to express business rule violations.
Route handlers catch them and turn them into flash notices and redirects;
infrastructure failures reach the app-level error handlers.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class NotFoundError(DomainError):
    """Requested entity does not exist."""


class DuplicateError(DomainError):
    """Entity with the same unique key already exists."""


class DuplicateEmailError(DuplicateError):
    """Another account already uses this email address."""

    def __init__(self, message: str = "Já existe uma conta com o email inserido."):
        super().__init__(message)


class DuplicateProviderError(DuplicateError):
    """The provider identity is already linked to an account."""

    def __init__(self, message: str = "Essa conta do provedor já está vinculada a outro perfil."):
        super().__init__(message)


class ValidationError(DomainError):
    """Input violates one or more business validation rules.

    All failing rules are collected in ``messages`` so the form can show
    them together.
    """

    def __init__(self, messages: str | list[str]):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class InvalidCredentialsError(DomainError):
    """Email/password pair does not match any account."""

    def __init__(self, message: str = "Email ou senha inválidos."):
        super().__init__(message)


class InvalidOrExpiredTokenError(DomainError):
    """Password reset token is unknown, already used or expired."""

    def __init__(self, message: str = "O token para resetar a senha é inválido ou se expirou."):
        super().__init__(message)


class OAuthLinkError(DomainError):
    """Provider identity cannot be attached to the requested account."""


class OAuthProviderError(DomainError):
    """OAuth handshake with the external provider failed."""


class PersistenceError(DomainError):
    """Credential or session store failed to complete an operation."""


class EmailDeliveryError(DomainError):
    """Outbound email could not be delivered."""
