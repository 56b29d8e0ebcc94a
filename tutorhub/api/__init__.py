# tutorhub/api/__init__.py
# Web routers. Each module exposes ``router``.

from . import admin
from . import auth
from . import dashboard
from . import sessions
from . import student
from . import tutor

__all__ = [
    "admin",
    "auth",
    "dashboard",
    "sessions",
    "student",
    "tutor",
]
