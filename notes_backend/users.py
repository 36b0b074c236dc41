"""Credential store: registration and login against the users table."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from notes_backend.errors import DuplicateIdentity, InvalidCredentials
from notes_backend.security import dummy_hash, get_password_hash, verify_password
from notes_database.models import User

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


# PUBLIC_INTERFACE
def register(db: Session, username: str, email: str, raw_password: str, age: int) -> User:
    """
    Create a user with a bcrypt-hashed password.
    Raises DuplicateIdentity if the email or username is taken.
    """
    if get_user_by_email(db, email):
        raise DuplicateIdentity("User already exists")
    if get_user_by_username(db, username):
        raise DuplicateIdentity("Username already taken")

    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(raw_password),
        age=age,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # lost a race with a concurrent registration
        db.rollback()
        raise DuplicateIdentity("User already exists") from exc
    db.refresh(user)
    logger.info("Registered user id=%s", user.id)
    return user


# PUBLIC_INTERFACE
def authenticate(db: Session, email: str, raw_password: str) -> User:
    """
    Look up a user by email and check the password.
    Unknown email and wrong password raise the same InvalidCredentials.
    """
    user = get_user_by_email(db, email)
    if user is None:
        verify_password(raw_password, dummy_hash())
        raise InvalidCredentials()
    if not verify_password(raw_password, user.hashed_password):
        raise InvalidCredentials()
    return user
