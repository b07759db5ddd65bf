"""
Database models for the chore champ application.

This module defines the SQLAlchemy models behind the household onboarding
flow:

* ``User`` – a person using the app. Email is unique and the password is
  stored as a werkzeug hash. A user belongs to at most one household.
* ``Household`` – the home grouping areas and members.
* ``Area`` – a named zone of a household, such as "Kitchen".
* ``Chore`` – a task with an optional description, due date and frequency.
* ``Session`` – a login session belonging to a user.
* ``AreaChore`` and ``UserChore`` – association rows linking chores to areas
  and to users.

Identifiers are text values produced by :func:`ids.new_id`. No cascades are
declared on the association tables, so removing an area has to delete its
``AreaChore`` rows first (see :func:`onboarding.delete_area`).
"""

from __future__ import annotations

import datetime
import sqlite3

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

from schemas import FREQUENCY_OPTIONS

# create a SQLAlchemy object without an app – we'll initialize it in app.py
db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
    # SQLite ignores REFERENCES clauses unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class User(TimestampMixin, db.Model):
    """Represents a user of the chore champ app."""

    __tablename__ = "users"

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(120))
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    household_id = db.Column(db.String(32), db.ForeignKey("households.id"))

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User {self.email}>"


class Household(TimestampMixin, db.Model):
    """Represents a household grouping areas and members."""

    __tablename__ = "households"

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(50), nullable=False)

    users = db.relationship("User", backref="household", lazy=True)
    areas = db.relationship("Area", backref="household", lazy=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Household {self.name}>"


class Area(TimestampMixin, db.Model):
    """Represents a named zone of a household."""

    __tablename__ = "areas"

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    household_id = db.Column(db.String(32), db.ForeignKey("households.id"))

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Area {self.name}>"


class Chore(TimestampMixin, db.Model):
    """Represents a recurring or one-off task."""

    __tablename__ = "chores"

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(255))
    due_at = db.Column(db.String(64))
    frequency = db.Column(db.Enum(*FREQUENCY_OPTIONS, name="frequency"))
    custom_frequency = db.Column(db.String(120))

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Chore {self.name} ({self.frequency})>"


class Session(db.Model):
    """Represents an authenticated login session."""

    __tablename__ = "sessions"

    id = db.Column(db.String(32), primary_key=True)
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"))
    expires_at = db.Column(db.DateTime(timezone=True))

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))


class AreaChore(TimestampMixin, db.Model):
    """Assigns a chore to an area."""

    __tablename__ = "areas_to_chores"

    area_id = db.Column(db.String(32), db.ForeignKey("areas.id"), primary_key=True)
    chore_id = db.Column(db.String(32), db.ForeignKey("chores.id"), primary_key=True)

    area = db.relationship("Area", backref=db.backref("area_chores", lazy=True))
    chore = db.relationship("Chore", backref=db.backref("area_chores", lazy=True))

    def __repr__(self) -> str:  # pragma: no cover
        return f"<AreaChore area={self.area_id} chore={self.chore_id}>"


class UserChore(TimestampMixin, db.Model):
    """Assigns a chore to a user."""

    __tablename__ = "users_to_chores"

    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), primary_key=True)
    chore_id = db.Column(db.String(32), db.ForeignKey("chores.id"), primary_key=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<UserChore user={self.user_id} chore={self.chore_id}>"
