"""Password reset service: token issuance, validation and consumption.

Flow:
    request_password_reset → email with /redefinir-senha/<token> link
    validate_reset_token   → reset form is shown only for live tokens
    perform_reset          → password replaced and token cleared atomically,
                             then a best-effort confirmation email

Tokens are 16 random bytes, hex encoded, valid for one hour and single use.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from domain.model.errors import (
    EmailDeliveryError,
    InvalidOrExpiredTokenError,
    ValidationError,
)
from domain.model.user import User
from port.mailer import Mailer
from port.user_repository import UserRepository
from services.auth_service import hash_password, is_valid_email, normalize_email, password_errors

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16
TOKEN_TTL = timedelta(hours=1)

RESET_SUBJECT = "Alterar a senha - Supermercado HAPPE"
CONFIRMATION_SUBJECT = "Senha alterada - Supermercado HAPPE"


@dataclass(frozen=True)
class ResetResult:
    user: User
    notified: bool


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def generate_reset_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/redefinir-senha/{token}"


def _reset_email_body(link: str) -> str:
    return (
        "Você está recebendo esse email porque você (ou outra pessoa) fez a solicitação "
        "para alteração de senha.\n\n"
        "Por favor, clique no link abaixo ou copie e cole no seu navegador:\n\n"
        f"{link}\n\n"
        "Se você não fez essa requisição, ignore esse email e a sua senha permanecerá a mesma.\n"
    )


def _confirmation_email_body(email: str) -> str:
    return f"Olá,\n\nA senha da conta {email} foi alterada com sucesso.\n"


def request_password_reset(
    repo: UserRepository,
    mailer: Mailer,
    email: str,
    base_url: str,
    now: datetime | None = None,
) -> User | None:
    """Issue a reset token for the account and email the reset link.

    Returns the user, or None when no account matches (nothing is sent).

    Raises:
        ValidationError: malformed email
        EmailDeliveryError: the reset email could not be sent
    """
    if not is_valid_email(email):
        raise ValidationError("Por favor, digite um email válido.")

    user = repo.get_by_email(normalize_email(email))
    if not user:
        logger.info("Password reset requested for unknown email")
        return None

    token = generate_reset_token()
    expires = _now(now) + TOKEN_TTL
    repo.set_reset_token(user.id, token, expires)
    logger.info("Password reset token issued", extra={"userId": user.id, "expires": expires.isoformat()})

    mailer.send(user.email, RESET_SUBJECT, _reset_email_body(reset_link(base_url, token)))
    return user


def validate_reset_token(repo: UserRepository, token: str, now: datetime | None = None) -> User:
    """Return the user holding a live token.

    Raises:
        InvalidOrExpiredTokenError: unknown, consumed or expired token
    """
    user = repo.get_by_reset_token(token, _now(now)) if token else None
    if not user:
        raise InvalidOrExpiredTokenError()
    return user


def perform_reset(
    repo: UserRepository,
    mailer: Mailer,
    token: str,
    new_password: str,
    confirm: str,
    now: datetime | None = None,
) -> ResetResult:
    """Replace the password of the token holder and consume the token.

    The confirmation email is sent after the change is durable; a delivery
    failure is logged and reported through ``ResetResult.notified``.

    Raises:
        ValidationError: new password too short or confirmation mismatch
        InvalidOrExpiredTokenError: unknown, consumed or expired token
    """
    errors = [f"{message}." for message in password_errors(new_password, confirm)]
    if errors:
        raise ValidationError(errors)

    user = repo.consume_reset_token(token, hash_password(new_password), _now(now)) if token else None
    if not user:
        raise InvalidOrExpiredTokenError()
    logger.info("Password reset completed", extra={"userId": user.id})

    notified = True
    try:
        mailer.send(user.email, CONFIRMATION_SUBJECT, _confirmation_email_body(user.email))
    except EmailDeliveryError:
        notified = False
        logger.warning("Password reset confirmation not delivered", extra={"userId": user.id})

    return ResetResult(user=user, notified=notified)
