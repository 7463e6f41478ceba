"""
Identity provider adapter (Firebase Authentication) and the bearer-token
dependency that turns an ``Authorization`` header into a ``Principal``.
"""
import logging
from typing import Optional, Protocol

import firebase_admin
from fastapi import Header, Request
from firebase_admin import auth, credentials, exceptions
from pydantic import BaseModel

from config import Settings
from errors import AuthError

logger = logging.getLogger(__name__)


class Principal(BaseModel):
    uid: str
    email: str


class IdentityProvider(Protocol):
    def verify_token(self, token: str) -> Principal: ...

    def get_uid_by_email(self, email: str) -> Optional[str]: ...

    def delete_user(self, uid: str) -> None: ...


class FirebaseIdentityProvider:
    """Wraps one firebase-admin ``App``; all calls go through it explicitly."""

    def __init__(self, app: "firebase_admin.App"):
        self.app = app

    @classmethod
    def from_settings(cls, settings: Settings, name: str = "club") -> "FirebaseIdentityProvider":
        cred = credentials.Certificate(settings.firebase_credentials) if settings.firebase_credentials else None
        try:
            app = firebase_admin.get_app(name)
        except ValueError:
            app = firebase_admin.initialize_app(cred, name=name)
        return cls(app)

    def verify_token(self, token: str) -> Principal:
        try:
            decoded = auth.verify_id_token(token, app=self.app)
        except (ValueError, exceptions.FirebaseError) as e:
            logger.warning("Rejected identity token: %s", e)
            raise AuthError()
        email = decoded.get("email")
        if not email:
            raise AuthError()
        return Principal(uid=decoded["uid"], email=email)

    def get_uid_by_email(self, email: str) -> Optional[str]:
        try:
            return auth.get_user_by_email(email, app=self.app).uid
        except auth.UserNotFoundError:
            return None

    def delete_user(self, uid: str) -> None:
        auth.delete_user(uid, app=self.app)


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_principal(request: Request, authorization: Optional[str] = Header(None)) -> Principal:
    if not authorization:
        raise AuthError()
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        raise AuthError()
    return get_identity(request).verify_token(parts[1])
