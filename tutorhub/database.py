# tutorhub/database.py - identity account store
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from tutorhub.config import settings

DATABASE_URL = settings.DATABASE_URL


def _create_engine(url: str):
    if str(url).startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


engine = _create_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
