"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_profile are the mappers.
Route, service and dependency code never touches SQL directly.

CredentialStore is the protocol the auth service depends on. UserStore is the
production implementation; tests may pass any object with the same methods.

Security:
  All queries use bound parameters. No f-strings in SQL.

  users.email carries a UNIQUE constraint. create_user() relies on it rather
  than on a read-before-write check, so two concurrent sign-ups for the same
  address cannot both succeed: the loser's IntegrityError is raised as
  DuplicateEmailError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User, UserProfile

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DuplicateEmailError(Exception):
    """Raised by create_user() when the email is already registered."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("Email already registered")


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    def get_by_email(self, email: str) -> User | None: ...

    def get_by_id(self, user_id: str) -> UserProfile | None: ...

    def create_user(self, name: str, email: str, password_hash: str) -> UserProfile: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),  # UUID4 string
    Column("name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash, never plaintext
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block on a sign-up write.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///planner_auth.db")
        profile = store.create_user("Ann", "a@x.com", hash_password("secret1"))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create_user(self, name: str, email: str, password_hash: str) -> UserProfile:
        """Insert a new user and return its projection.

        Raises DuplicateEmailError if the email already exists, including when
        a concurrent request inserted it between any pre-check and this call.
        """
        profile = UserProfile(id=str(uuid.uuid4()), name=name, email=email, created_at=_now_iso())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=profile.id,
                        name=profile.name,
                        email=profile.email,
                        password=password_hash,
                        created_at=profile.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(email) from exc
        return profile

    def get_by_email(self, email: str) -> User | None:
        """Look up a user, hash included, by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: str) -> UserProfile | None:
        """Look up a user projection by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select()
                .with_only_columns(_users.c.id, _users.c.name, _users.c.email, _users.c.created_at)
                .where(_users.c.id == user_id)
            ).fetchone()
        return _row_to_profile(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.password,
        created_at=row.created_at,
    )


def _row_to_profile(row) -> UserProfile:
    return UserProfile(id=row.id, name=row.name, email=row.email, created_at=row.created_at)
