import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Header, Request

from database import parse_object_id
from errors import AuthenticationRequired
from logger import get_logger
from settings import Settings

logger = get_logger(__name__)


# Passwords

def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(8)
    return salt + "$" + hashlib.sha256((salt + password).encode()).hexdigest()


def verify_password(password: str, stored: str) -> bool:
    try:
        salt, _ = stored.split("$")
    except ValueError:
        return False
    return hmac.compare_digest(hash_password(password, salt), stored)


# Tokens

class TokenSigner:
    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret.get_secret_value()
        self._algorithm = settings.jwt_algorithm

    def sign(self, user_id: str) -> str:
        # jti keeps two sessions issued in the same second distinct
        payload = {"_id": user_id, "iat": int(time.time()), "jti": secrets.token_hex(8)}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as e:
            logger.info("token rejected", reason=type(e).__name__)
            raise AuthenticationRequired()
        user_id = payload.get("_id")
        if not isinstance(user_id, str) or not user_id:
            raise AuthenticationRequired()
        return user_id


def extract_bearer(header: Optional[str]) -> str:
    """Pull the token out of an Authorization header, tolerating quoted tokens."""
    if not header:
        raise AuthenticationRequired()
    token = header.replace("Bearer ", "", 1).replace('"', "").strip()
    if not token:
        raise AuthenticationRequired()
    return token


# Sessions

@dataclass
class Session:
    user: dict
    token: str

    @property
    def user_id(self):
        return self.user["_id"]


class SessionVerifier:
    def __init__(self, users, signer: TokenSigner):
        self.users = users
        self.signer = signer

    def authenticate(self, header: Optional[str]) -> Session:
        token = extract_bearer(header)
        oid = parse_object_id(self.signer.verify(token))
        if oid is None:
            raise AuthenticationRequired()
        # a validly signed token that was revoked no longer appears in tokens
        user = self.users.find_one({"_id": oid, "tokens": token})
        if not user:
            raise AuthenticationRequired()
        return Session(user=user, token=token)


def require_session(request: Request, authorization: Optional[str] = Header(default=None)) -> Session:
    return request.app.state.verifier.authenticate(authorization)
