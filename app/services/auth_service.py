import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings
from app.models import Database, User
from app.schemas.auth import (
    LoginResult,
    PublicUser,
    RegisterResult,
    RegistrationInput,
    first_error_message,
    normalize_email,
)
from app.services.auth_tokens import (
    as_utc,
    delete_session,
    delete_verification_tokens_for_user,
    get_latest_verification_token,
    get_live_session_user,
    get_user_by_email,
    issue_session,
    issue_verification_code,
    utcnow,
)
from app.services.email_service import EmailSender, send_verification_code
from app.services.errors import AuthError, AuthErrorKind
from app.services.security import (
    build_password_context,
    burn_password_check,
    create_session_token,
    decode_session_token,
    get_password_hash,
    tokens_match,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, email verification and session lifecycle.

    Every public operation runs inside one scoped database session. Storage
    failures are classified at that boundary: unique-constraint violations
    become ``CONFLICT``, other database errors ``SERVICE_UNAVAILABLE`` and
    anything unexpected ``INTERNAL_ERROR``. Detail goes to the log only.
    """

    def __init__(self, database: Database, email_sender: EmailSender, config: Settings):
        self.database = database
        self.email_sender = email_sender
        self.config = config
        self.password_context = build_password_context(config.BCRYPT_ROUNDS)

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Session]:
        try:
            with self.database.session() as db:
                yield db
        except AuthError:
            raise
        except IntegrityError as exc:
            logger.warning("%s: integrity error: %s", operation, exc.orig)
            raise AuthError(AuthErrorKind.CONFLICT) from exc
        except SQLAlchemyError as exc:
            logger.error("%s: storage failure: %s", operation, exc.__class__.__name__, exc_info=True)
            raise AuthError(AuthErrorKind.SERVICE_UNAVAILABLE) from exc
        except Exception as exc:
            logger.exception("%s: unexpected failure", operation)
            raise AuthError(AuthErrorKind.INTERNAL_ERROR) from exc

    def _dispatch_verification_code(self, user_id: int, email: str, name: str, code: str) -> bool:
        try:
            send_verification_code(
                self.email_sender,
                email,
                name,
                code,
                self.config.VERIFICATION_CODE_EXPIRE_MINUTES,
            )
        except Exception:
            logger.exception("Failed to send verification email to user id=%s", user_id)
            return False
        return True

    def register(self, name: str, email: str, password: str) -> RegisterResult:
        try:
            data = RegistrationInput(name=name, email=email, password=password)
        except ValidationError as exc:
            raise AuthError(AuthErrorKind.VALIDATION_ERROR, first_error_message(exc)) from None

        with self._unit_of_work("register") as db:
            if get_user_by_email(db, data.email):
                raise AuthError(AuthErrorKind.CONFLICT)

            user = User(
                name=data.name,
                email=data.email,
                password_hash=get_password_hash(data.password, self.password_context),
                email_verified=False,
            )
            db.add(user)
            db.flush()

            code, _ = issue_verification_code(
                db=db,
                user_id=user.id,
                expires_in_minutes=self.config.VERIFICATION_CODE_EXPIRE_MINUTES,
            )
            db.commit()
            db.refresh(user)
            public = PublicUser.model_validate(user)

        logger.info("Registered user id=%s", public.id)
        self._dispatch_verification_code(public.id, public.email, public.name, code)
        return RegisterResult(user=public, needs_verification=True)

    def login(self, email: str, password: str) -> LoginResult:
        email = normalize_email(email)
        password = password or ""

        with self._unit_of_work("login") as db:
            user = get_user_by_email(db, email) if email else None
            if user is None:
                burn_password_check(password, self.password_context)
                raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)
            if not verify_password(password, user.password_hash, self.password_context):
                raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)
            if not user.email_verified:
                raise AuthError(AuthErrorKind.UNVERIFIED_EMAIL, needs_verification=True)

            expires_at = utcnow() + timedelta(days=self.config.SESSION_EXPIRE_DAYS)
            token = create_session_token(
                user.id,
                expires_at,
                self.config.JWT_SECRET,
                self.config.JWT_ALGORITHM,
            )
            issue_session(db, user.id, token, expires_at)
            db.commit()
            public = PublicUser.model_validate(user)

        logger.info("User id=%s logged in", public.id)
        return LoginResult(user=public, token=token, expires_at=expires_at)

    def verify_email(self, email: str, code: str) -> PublicUser:
        email = normalize_email(email)
        code = (code or "").strip().upper()

        with self._unit_of_work("verify_email") as db:
            user = get_user_by_email(db, email) if email else None
            token = get_latest_verification_token(db, user.id) if user else None
            if token is None or not code or not tokens_match(code, token.token_hash):
                raise AuthError(AuthErrorKind.INVALID_CODE)
            if utcnow() > as_utc(token.expires_at):
                raise AuthError(AuthErrorKind.CODE_EXPIRED)

            if not user.email_verified:
                user.email_verified = True
                user.email_verified_at = utcnow()
            delete_verification_tokens_for_user(db, user.id)
            db.commit()
            db.refresh(user)
            public = PublicUser.model_validate(user)

        logger.info("Email verified for user id=%s", public.id)
        return public

    def resend_verification_code(self, email: str) -> None:
        email = normalize_email(email)

        with self._unit_of_work("resend_verification_code") as db:
            user = get_user_by_email(db, email) if email else None
            if user is None:
                raise AuthError(AuthErrorKind.NOT_FOUND)
            if user.email_verified:
                raise AuthError(AuthErrorKind.ALREADY_VERIFIED)

            delete_verification_tokens_for_user(db, user.id)
            code, _ = issue_verification_code(
                db=db,
                user_id=user.id,
                expires_in_minutes=self.config.VERIFICATION_CODE_EXPIRE_MINUTES,
            )
            db.commit()
            user_id, name = user.id, user.name

        self._dispatch_verification_code(user_id, email, name, code)

    def get_user_from_token(self, token: str | None) -> PublicUser | None:
        user_id = decode_session_token(token, self.config.JWT_SECRET, self.config.JWT_ALGORITHM)
        if user_id is None:
            return None

        with self._unit_of_work("get_user_from_token") as db:
            user = get_live_session_user(db, token, user_id)
            if user is None:
                return None
            return PublicUser.model_validate(user)

    def logout(self, token: str | None) -> bool:
        if not token:
            return False

        with self._unit_of_work("logout") as db:
            removed = delete_session(db, token)
            db.commit()

        if removed:
            logger.info("Session revoked")
        return removed
