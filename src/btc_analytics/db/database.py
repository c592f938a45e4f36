from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from ..config import DATABASE_URL

Base = declarative_base()


def get_engine(url=None):
    return create_engine(url or DATABASE_URL)
