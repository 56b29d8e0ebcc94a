# tutorhub/models/__init__.py
from .account import Account, RevokedToken

__all__ = ["Account", "RevokedToken"]
