from .provider import IdentityProvider, IdentityStore
from .local import LocalIdentityProvider

__all__ = ["IdentityProvider", "IdentityStore", "LocalIdentityProvider"]
