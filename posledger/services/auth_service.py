import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from posledger.config import settings
from posledger.models.user import ActivityLog, User

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode(), hashed.encode())


def create_access_token(user_id: str, username: str) -> str:
    payload = {
        "sub": user_id,
        "username": username,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None


def authenticate(db: Session, username: str, password: str) -> User | None:
    user = db.query(User).filter(User.username == username, User.active.is_(True)).first()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def get_user_by_id(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def create_user(db: Session, username: str, password: str, display_name: str = "", role: str = "cajero") -> User:
    existing = db.query(User).filter(User.username == username).first()
    if existing:
        raise ValueError(f"Username '{username}' already exists")
    user = User(
        username=username,
        display_name=display_name or username,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def ensure_default_admin(db: Session) -> None:
    """Create the configured admin user if no users exist."""
    if db.query(User).count() == 0:
        create_user(
            db,
            username=settings.DEFAULT_ADMIN_USERNAME,
            password=settings.DEFAULT_ADMIN_PASSWORD,
            display_name="Admin",
            role="admin",
        )
        logger.info("Created default admin user '%s'", settings.DEFAULT_ADMIN_USERNAME)


# Activity logging

def log_activity(db: Session, user: User, action: str, reference: str = "", detail: str = "", ip: str = "") -> None:
    """Record an audit row in its own commit.

    Runs after the operation it describes has committed, so a failure here is
    logged and swallowed: the caller must still see the committed result.
    """
    username = ""
    try:
        user_id, username = user.id, user.username
        db.add(ActivityLog(
            user_id=user_id,
            username=username,
            action=action,
            reference=reference,
            detail=detail,
            ip_address=ip,
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record activity %s (%s) for %s", action, reference, username)


def get_activity_logs(
    db: Session, limit: int = 100, action: str | None = None, reference: str | None = None
) -> list[ActivityLog]:
    q = db.query(ActivityLog)
    if action:
        q = q.filter(ActivityLog.action == action)
    if reference:
        q = q.filter(ActivityLog.reference == reference)
    return q.order_by(ActivityLog.created_at.desc()).limit(limit).all()
