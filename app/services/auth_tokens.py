from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app.models import EmailVerificationToken, User, UserSession
from app.services.security import generate_verification_code, hash_token


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _db_datetime(db: Session, value: datetime) -> datetime:
    bind = db.get_bind()
    if bind and bind.dialect.name == "sqlite":
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def get_latest_verification_token(db: Session, user_id: int) -> EmailVerificationToken | None:
    return (
        db.query(EmailVerificationToken)
        .filter(EmailVerificationToken.user_id == user_id)
        .order_by(EmailVerificationToken.created_at.desc(), EmailVerificationToken.id.desc())
        .first()
    )


def issue_verification_code(
    db: Session,
    user_id: int,
    expires_in_minutes: int,
) -> tuple[str, EmailVerificationToken]:
    code = generate_verification_code()
    now = utcnow()
    record = EmailVerificationToken(
        user_id=user_id,
        token_hash=hash_token(code),
        expires_at=_db_datetime(db, now + timedelta(minutes=expires_in_minutes)),
        created_at=_db_datetime(db, now),
    )
    db.add(record)
    db.flush()
    return code, record


def delete_verification_tokens_for_user(db: Session, user_id: int) -> int:
    return (
        db.query(EmailVerificationToken)
        .filter(EmailVerificationToken.user_id == user_id)
        .delete(synchronize_session=False)
    )


def issue_session(db: Session, user_id: int, token: str, expires_at: datetime) -> UserSession:
    record = UserSession(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=_db_datetime(db, expires_at),
    )
    db.add(record)
    db.flush()
    return record


def get_live_session_user(db: Session, token: str, user_id: int) -> User | None:
    """Return the owner of a session that is still live, or None."""
    db_now = _db_datetime(db, utcnow())
    return (
        db.query(User)
        .join(UserSession, UserSession.user_id == User.id)
        .filter(
            UserSession.token_hash == hash_token(token),
            UserSession.user_id == user_id,
            UserSession.expires_at > db_now,
        )
        .first()
    )


def delete_session(db: Session, token: str) -> bool:
    deleted = (
        db.query(UserSession)
        .filter(UserSession.token_hash == hash_token(token))
        .delete(synchronize_session=False)
    )
    return deleted > 0
