"""
Local identity provider: accounts in SQLAlchemy, bcrypt passwords, JWT tokens.

Stands in for the hosted provider in development and tests. Session tokens are
long-lived and revocable; bearer tokens are short-lived and minted per request.
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from tutorhub.config import settings
from tutorhub.database import SessionLocal
from tutorhub.identity.provider import IdentityProvider
from tutorhub.models.account import Account, RevokedToken
from tutorhub.schemas.auth import Identity
from tutorhub.utils.errors import AuthenticationRequired, ValidationFailed

logger = logging.getLogger(__name__)


# ==========================
# AUTH CONFIG
# ==========================

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto"
)

SESSION_TOKEN_TYPE = "session"
ID_TOKEN_TYPE = "id"


# ==========================
# PASSWORD UTILS
# ==========================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(_truncate(plain_password), hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(_truncate(password))


def _truncate(password: str) -> str:
    """Bcrypt max input length = 72 bytes"""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > 72:
        return password_bytes[:72].decode("utf-8", errors="ignore")
    return password


# ==========================
# JWT TOKEN
# ==========================

def create_token(data: Dict[str, Any], expires_delta: timedelta, *, secret: str, algorithm: str) -> str:
    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.update({
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_token(token: str, *, secret: str, algorithm: str) -> Dict[str, Any]:
    return jwt.decode(token, secret, algorithms=[algorithm])


class LocalIdentityProvider(IdentityProvider):

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        *,
        secret_key: str = settings.SECRET_KEY,
        algorithm: str = settings.ALGORITHM,
        session_ttl: timedelta = timedelta(minutes=settings.SESSION_TOKEN_EXPIRE_MINUTES),
        id_token_ttl: timedelta = timedelta(seconds=settings.ID_TOKEN_EXPIRE_SECONDS),
    ):
        self._session_factory = session_factory
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._session_ttl = session_ttl
        self._id_token_ttl = id_token_ttl

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _db(self) -> Session:
        return self._session_factory()

    def _to_identity(self, account: Account) -> Identity:
        return Identity(
            uid=account.uid,
            email=account.email,
            display_name=account.display_name,
            photo_url=account.photo_url,
        ).bind(self)

    def _decode(self, token: str, expected_type: str) -> Optional[Dict[str, Any]]:
        try:
            payload = decode_token(token, secret=self._secret_key, algorithm=self._algorithm)
        except JWTError:
            return None
        if payload.get("typ") != expected_type or not payload.get("sub"):
            return None
        return payload

    # ------------------------------------------------------------------
    # blocking work (database and bcrypt), run off the event loop
    # ------------------------------------------------------------------

    def _check_credentials(self, email: str, password: str) -> str:
        db = self._db()
        try:
            account = db.query(Account).filter(
                Account.email == email.strip().lower()
            ).first()
            if not account or not account.is_active or not verify_password(password, account.password_hash):
                logger.warning("Failed sign-in for %s", email)
                raise AuthenticationRequired("Invalid email or password")
            return create_token(
                {"sub": account.uid, "email": account.email, "typ": SESSION_TOKEN_TYPE},
                self._session_ttl,
                secret=self._secret_key,
                algorithm=self._algorithm,
            )
        finally:
            db.close()

    def _revoke(self, jti: str) -> None:
        db = self._db()
        try:
            exists = db.query(RevokedToken).filter(RevokedToken.jti == jti).first()
            if not exists:
                db.add(RevokedToken(jti=jti))
                db.commit()
        finally:
            db.close()

    def _load_identity(self, payload: Dict[str, Any]) -> Optional[Identity]:
        db = self._db()
        try:
            revoked = db.query(RevokedToken).filter(RevokedToken.jti == payload.get("jti")).first()
            if revoked:
                return None
            account = db.query(Account).filter(Account.uid == payload["sub"]).first()
            if not account or not account.is_active:
                return None
            return self._to_identity(account)
        finally:
            db.close()

    def _insert_account(
        self,
        email: str,
        password: str,
        display_name: Optional[str],
        photo_url: Optional[str],
    ) -> Identity:
        normalized_email = email.strip().lower()
        db = self._db()
        try:
            existing = db.query(Account).filter(Account.email == normalized_email).first()
            if existing:
                raise ValidationFailed("Email already registered", field="email")
            account = Account(
                uid=uuid.uuid4().hex,
                email=normalized_email,
                password_hash=get_password_hash(password),
                display_name=display_name,
                photo_url=photo_url,
                is_active=True,
            )
            db.add(account)
            db.commit()
            db.refresh(account)
            logger.info("Created identity account for %s", normalized_email)
            return self._to_identity(account)
        finally:
            db.close()

    def _save_profile(self, uid: str, display_name: Optional[str], photo_url: Optional[str]) -> Identity:
        db = self._db()
        try:
            account = db.query(Account).filter(Account.uid == uid).first()
            if account is None:
                raise AuthenticationRequired("No user is currently signed in.")
            if display_name is not None:
                account.display_name = display_name
            if photo_url is not None:
                account.photo_url = photo_url
            db.commit()
            db.refresh(account)
            return self._to_identity(account)
        finally:
            db.close()

    # ------------------------------------------------------------------
    # IdentityProvider
    # ------------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> str:
        return await run_in_threadpool(self._check_credentials, email, password)

    async def sign_out(self, session_token: str) -> None:
        payload = self._decode(session_token, SESSION_TOKEN_TYPE)
        if not payload or not payload.get("jti"):
            return
        await run_in_threadpool(self._revoke, payload["jti"])

    async def resolve(self, session_token: Optional[str]) -> Optional[Identity]:
        if not session_token:
            return None
        payload = self._decode(session_token, SESSION_TOKEN_TYPE)
        if not payload:
            return None
        return await run_in_threadpool(self._load_identity, payload)

    async def mint_token(self, identity: Identity) -> str:
        return create_token(
            {
                "sub": identity.uid,
                "email": identity.email,
                "name": identity.display_name,
                "typ": ID_TOKEN_TYPE,
            },
            self._id_token_ttl,
            secret=self._secret_key,
            algorithm=self._algorithm,
        )

    async def create_account(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        return await run_in_threadpool(self._insert_account, email, password, display_name, photo_url)

    async def update_profile(
        self,
        identity: Identity,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Identity:
        return await run_in_threadpool(self._save_profile, identity.uid, display_name, photo_url)

    def verify_id_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Decode a bearer token minted by this provider (what the backend does)."""
        return self._decode(token, ID_TOKEN_TYPE)
