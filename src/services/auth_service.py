"""Auth service: signup, authentication and account management business logic.

Pure business logic with no HTTP dependencies.
Raises domain errors that route handlers turn into flash notices.
"""

import logging
from dataclasses import replace

import bcrypt
from email_validator import EmailNotValidError, validate_email

from domain.model.errors import (
    DuplicateEmailError,
    DuplicateProviderError,
    InvalidCredentialsError,
    NotFoundError,
    OAuthLinkError,
    ValidationError,
)
from domain.model.user import OAuthProviderKind, OAuthToken, Profile, ProviderIdentity, User
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_BYTES = 72
MIN_PASSWORD_LENGTH = 8

MSG_INVALID_EMAIL = "Email inválido"
MSG_EMPTY_PASSWORD = "A senha deve ser preenchida"
MSG_SHORT_PASSWORD = "A senha deve conter no mínimo 8 caracteres"
MSG_PASSWORD_MISMATCH = "As senhas não coincidem"

# Providers whose local part is case-insensitive and ignores "+tag" suffixes
_SUBADDRESS_DOMAINS = {
    'gmail.com': '+',
    'googlemail.com': '+',
    'outlook.com': '+',
    'hotmail.com': '+',
    'live.com': '+',
    'icloud.com': '+',
    'me.com': '+',
    'yahoo.com': '-',
}


# ── passwords ────────────────────────────────────────────────


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def password_errors(password: str, confirm: str) -> list[str]:
    """Validate a new password and its confirmation. Return every failing rule."""
    errors = []
    if len(password or '') < MIN_PASSWORD_LENGTH:
        errors.append(MSG_SHORT_PASSWORD)
    if password != confirm:
        errors.append(MSG_PASSWORD_MISMATCH)
    return errors


# ── emails ───────────────────────────────────────────────────


def is_valid_email(email: str) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def normalize_email(email: str) -> str:
    """Canonical form of an email address used as the account key.

    Lowercases the address, folds googlemail.com into gmail.com and strips
    subaddress tags for providers that ignore them. Dots in Gmail local parts
    are kept.
    """
    email = (email or '').strip().lower()
    local, sep, domain = email.rpartition('@')
    if not sep:
        return email
    if domain == 'googlemail.com':
        domain = 'gmail.com'
    tag_separator = _SUBADDRESS_DOMAINS.get(domain)
    if tag_separator and tag_separator in local:
        local = local.split(tag_separator, 1)[0]
    return f"{local}@{domain}"


def _require_valid_email(email: str, message: str = MSG_INVALID_EMAIL) -> str:
    if not is_valid_email(email):
        raise ValidationError(message)
    return normalize_email(email)


# ── signup / login ───────────────────────────────────────────


def signup(repo: UserRepository, email: str, password: str, confirm_password: str) -> User:
    """Create a local account.

    Raises:
        ValidationError: one or more input rules failed (all reported together)
        DuplicateEmailError: the normalized email is already registered
    """
    errors = []
    if not is_valid_email(email):
        errors.append(MSG_INVALID_EMAIL)
    errors.extend(password_errors(password, confirm_password))
    if errors:
        raise ValidationError(errors)

    email = normalize_email(email)
    if repo.get_by_email(email):
        raise DuplicateEmailError()

    # The store's unique index still decides races between concurrent signups
    user = repo.create(email=email, password_hash=hash_password(password))
    logger.info("User registered", extra={"userId": user.id})
    return user


def validate_login(email: str, password: str) -> str:
    """Check login form input and return the normalized email."""
    errors = []
    if not is_valid_email(email):
        errors.append(MSG_INVALID_EMAIL)
    if not password:
        errors.append(MSG_EMPTY_PASSWORD)
    if errors:
        raise ValidationError(errors)
    return normalize_email(email)


def authenticate(repo: UserRepository, email: str, password: str) -> User:
    """Authenticate a user by email and password.

    Doesn't reveal whether the email exists.

    Raises:
        ValidationError: malformed input
        InvalidCredentialsError: unknown email, OAuth-only account or wrong password
    """
    email = validate_login(email, password)
    user = repo.get_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Login rejected", extra={"email": email})
        raise InvalidCredentialsError()
    return user


def _already_linked(provider: str) -> OAuthLinkError:
    return OAuthLinkError(
        f"Já existe uma conta do {provider} vinculada a outro perfil. "
        f"Entre com essa conta ou exclua-a e depois vincule-a ao seu perfil atual."
    )


def _email_taken(provider: str) -> OAuthLinkError:
    return OAuthLinkError(
        f"Já existe uma conta usando este email. Entre nessa conta e vincule-a "
        f"ao {provider} manualmente em Gerenciar Conta."
    )


def authenticate_oauth(
    repo: UserRepository, identity: ProviderIdentity, current_user_id: str | None = None,
) -> tuple[User, str | None]:
    """Sign in or link an account with a provider identity.

    Returns the user to bind to the session and an optional info notice.

    Raises:
        OAuthLinkError: the provider identity or its email belongs to another account
    """
    provider = identity.kind.value.capitalize()
    linked = repo.get_by_provider(identity.kind, identity.provider_id)

    if current_user_id:
        if linked and linked.id != current_user_id:
            raise _already_linked(provider)
        user = repo.get_by_id(current_user_id)
        if not user:
            raise NotFoundError("User not found")
        profile = replace(
            user.profile,
            name=user.profile.name or identity.name,
            gender=user.profile.gender or identity.gender,
            picture=user.profile.picture or identity.picture,
        )
        try:
            user = repo.link_provider(
                user.id, identity.kind, identity.provider_id,
                OAuthToken(kind=identity.kind.value, access_token=identity.access_token), profile,
            )
        except DuplicateProviderError:
            # Another account claimed the identity after the lookup above
            raise _already_linked(provider)
        if not user:
            raise NotFoundError("User not found")
        logger.info("Provider linked", extra={"userId": user.id, "provider": identity.kind.value})
        return user, f"A conta do {provider} foi vinculada."

    if linked:
        return linked, None

    email = normalize_email(identity.email) if identity.email else None
    if email and repo.get_by_email(email):
        raise _email_taken(provider)

    try:
        user = repo.create(
            email=email,
            password_hash=None,
            profile=Profile(
                name=identity.name,
                gender=identity.gender,
                location=identity.location,
                picture=identity.picture,
            ),
            facebook=identity.provider_id if identity.kind is OAuthProviderKind.FACEBOOK else None,
            tokens=[OAuthToken(kind=identity.kind.value, access_token=identity.access_token)],
        )
    except DuplicateEmailError:
        # A signup took the email after the lookup above
        raise _email_taken(provider)
    except DuplicateProviderError:
        # A parallel callback for the same identity created the account first
        winner = repo.get_by_provider(identity.kind, identity.provider_id)
        if not winner:
            raise _already_linked(provider)
        return winner, None
    logger.info("User registered via provider", extra={"userId": user.id, "provider": identity.kind.value})
    return user, None


# ── account management ───────────────────────────────────────


def update_profile(
    repo: UserRepository,
    user_id: str,
    email: str,
    name: str = '',
    gender: str = '',
    location: str = '',
    website: str = '',
) -> User:
    """Overwrite email and profile fields; omitted fields are cleared.

    Raises:
        ValidationError: invalid email
        DuplicateEmailError: email belongs to another account
        NotFoundError: the account no longer exists
    """
    email = _require_valid_email(email, "Por favor, digite um email válido.")
    profile = Profile(
        name=name or '',
        gender=gender or '',
        location=location or '',
        website=website or '',
    )
    user = repo.update_profile(user_id, email, profile)
    if not user:
        raise NotFoundError("User not found")
    logger.info("Profile updated", extra={"userId": user_id})
    return user


def change_password(repo: UserRepository, user_id: str, new_password: str, confirm: str) -> None:
    """Replace the password of an already authenticated user.

    Raises:
        ValidationError: new password too short or confirmation mismatch
        NotFoundError: the account no longer exists
    """
    errors = password_errors(new_password, confirm)
    if errors:
        raise ValidationError(errors)
    if not repo.set_password(user_id, hash_password(new_password)):
        raise NotFoundError("User not found")
    logger.info("Password changed", extra={"userId": user_id})


def delete_account(repo: UserRepository, user_id: str) -> None:
    if repo.delete(user_id):
        logger.info("Account deleted", extra={"userId": user_id})
    else:
        logger.info("Account already deleted", extra={"userId": user_id})


def unlink_provider(repo: UserRepository, user_id: str, kind: OAuthProviderKind) -> User | None:
    """Remove a provider linkage. No-op if the provider was not linked."""
    user = repo.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.linked_id(kind) is None and not any(t.kind == kind.value for t in user.tokens):
        return user
    user = repo.unlink_provider(user_id, kind)
    logger.info("Provider unlinked", extra={"userId": user_id, "provider": kind.value})
    return user
