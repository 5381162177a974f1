from typing import Tuple

from pymongo.errors import DuplicateKeyError

from database import Database, parse_object_id, serialize, utcnow
from errors import LoginFailed, NotFound, ValidationFailed
from logger import get_logger
from schemas import User
from security import Session, TokenSigner, hash_password, verify_password
from validation import check_password, normalize_email, validate_registration

logger = get_logger(__name__)


def public_view(user: dict) -> dict:
    view = serialize(user)
    view.pop("password_hash", None)
    view.pop("tokens", None)
    return view


class UserDirectory:
    """Registration, login and session issuance/revocation."""

    def __init__(self, db: Database, signer: TokenSigner):
        self.db = db
        self.signer = signer

    def get_by_email(self, email: str):
        return self.db.users.find_one({"email": normalize_email(email)})

    def register(self, name, email, password) -> Tuple[dict, str]:
        result = validate_registration(name, email, password)
        if not result.ok:
            raise result.to_error()
        cleaned = result.cleaned
        if self.get_by_email(cleaned["email"]):
            raise ValidationFailed("Email is already registered", fields={"email": "Email is already registered"})

        user = User(
            name=cleaned["name"],
            email=cleaned["email"],
            password_hash=hash_password(cleaned["password"]),
        )
        try:
            user_id = self.db.create_document("user", user)
        except DuplicateKeyError:
            raise ValidationFailed("Email is already registered", fields={"email": "Email is already registered"})
        logger.info("user registered", user_id=user_id)

        stored = self.db.users.find_one({"_id": parse_object_id(user_id)})
        token = self.issue_token(stored)
        return stored, token

    def login(self, email, password) -> Tuple[dict, str]:
        # same error whether the email or the password was wrong
        if not isinstance(email, str) or not isinstance(password, str):
            raise LoginFailed()
        user = self.get_by_email(email)
        if not user or not verify_password(password, user.get("password_hash", "")):
            logger.info("login failed")
            raise LoginFailed()
        token = self.issue_token(user)
        logger.info("user logged in", user_id=str(user["_id"]))
        return user, token

    def issue_token(self, user: dict) -> str:
        token = self.signer.sign(str(user["_id"]))
        self.db.users.update_one(
            {"_id": user["_id"]},
            {"$push": {"tokens": token}, "$set": {"updated_at": utcnow()}},
        )
        user.setdefault("tokens", []).append(token)
        return token

    def change_password(self, user_id, new_password) -> None:
        """Store a fresh hash for a new plaintext password.

        Not routed over HTTP; kept so the stored hash is always recomputed
        whenever the password changes.
        """
        result = check_password(new_password)
        if not result.ok:
            raise result.to_error()
        res = self.db.users.update_one(
            {"_id": parse_object_id(user_id)},
            {"$set": {"password_hash": hash_password(result.cleaned["password"]), "updated_at": utcnow()}},
        )
        if res.matched_count == 0:
            raise NotFound("User not found")

    def logout(self, session: Session) -> None:
        self.db.users.update_one(
            {"_id": session.user_id},
            {"$pull": {"tokens": session.token}, "$set": {"updated_at": utcnow()}},
        )
        logger.info("session revoked", user_id=str(session.user_id))

    def logout_all(self, session: Session) -> None:
        self.db.users.update_one(
            {"_id": session.user_id},
            {"$set": {"tokens": [], "updated_at": utcnow()}},
        )
        logger.info("all sessions revoked", user_id=str(session.user_id))
