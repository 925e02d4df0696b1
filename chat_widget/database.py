"""Chat Widget: preference database helpers."""

import os

from dotenv import load_dotenv
from sqlalchemy import create_engine, Column, String, Text
from sqlalchemy.orm import sessionmaker, declarative_base

load_dotenv()

DATABASE_PATH = os.getenv("WIDGET_DB_PATH", os.path.join(os.path.dirname(__file__), "widget.db"))
DATABASE_URL = f"sqlite:///{DATABASE_PATH}"

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class DBPreference(Base):
    __tablename__ = "preferences"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)


def create_session_factory(database_url: str):
    """Returns a sessionmaker on its own engine, table created. Used for tests and alternate stores."""
    other = create_engine(database_url, connect_args={"check_same_thread": False})
    init_db(other)
    return sessionmaker(autocommit=False, autoflush=False, bind=other)
