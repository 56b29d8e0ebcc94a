# tutorhub/models/account.py
from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, func
from tutorhub.database import Base


# ---------------- ACCOUNT (LOCAL IDENTITY PROVIDER) ----------------
class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(100))
    photo_url = Column(String(500))
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())


# ---------------- REVOKED SESSION TOKENS ----------------
class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(64), unique=True, index=True, nullable=False)
    revoked_at = Column(TIMESTAMP, server_default=func.now())
