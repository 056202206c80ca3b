# Overview: Service-layer operations for operators and their API tokens.

from __future__ import annotations

import hmac
import secrets

from ..extensions import db
from ..models import User
from ..validation import ConflictError, ValidationError
from .concurrency import atomic


def generate_api_token() -> str:
    return secrets.token_hex(32)


def create_user(*, name: str, email: str) -> User:
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        raise ValidationError("name is required")
    if not email or "@" not in email:
        raise ValidationError("a valid email is required")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError(f"user with email '{email}' already exists")

    user = User(name=name, email=email, api_token=generate_api_token())
    with atomic():
        db.session.add(user)
    return user


def find_user_by_token(token: str | None) -> User | None:
    if not token:
        return None
    return db.session.query(User).filter_by(api_token=token).first()


def rotate_api_token(user: User) -> str:
    with atomic():
        user.api_token = generate_api_token()
    return user.api_token


def cron_secret_matches(presented: str | None, expected: str | None) -> bool:
    """Constant-time comparison; an unset secret never matches."""
    if not expected or not presented:
        return False
    return hmac.compare_digest(presented.encode(), expected.encode())
