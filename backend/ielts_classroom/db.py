from __future__ import annotations
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./ielts_classroom.db"

Base = declarative_base()


def make_engine(url: str):
	connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
	kwargs = {}
	if url in ("sqlite://", "sqlite:///:memory:"):
		# A single shared connection keeps the in-memory database alive
		kwargs["poolclass"] = StaticPool
	return create_engine(url, connect_args=connect_args, future=True, **kwargs)


def make_session_factory(bind):
	return sessionmaker(autocommit=False, autoflush=False, bind=bind, future=True)


engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)
