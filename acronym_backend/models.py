"""SQLAlchemy models for the acronym backend.

This module defines the database schema used by the Flask application:
users, the bearer tokens issued to them at login, acronyms owned by users and
the categories acronyms can be tagged with. Acronyms and categories are linked
through the plain ``acronym_category`` association table whose composite
primary key is the pair of foreign keys.

Each model provides the JSON projection returned by the REST resources.
:class:`User` is only ever serialized through :meth:`User.to_public` so the
password hash never leaves the server.
"""

from datetime import datetime

from .app import db


# Association rows carry no attributes of their own. ``ondelete`` keeps the
# table clean when either side is removed outside the ORM.
acronym_category = db.Table(
    "acronym_category",
    db.Column(
        "acronym_id",
        db.Integer,
        db.ForeignKey("acronym.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "category_id",
        db.Integer,
        db.ForeignKey("category.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class User(db.Model):
    """Database representation of an application user.

    ``password_hash`` stores an Argon2 digest produced by
    :data:`acronym_backend.services.password_hasher`.
    """

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)

    acronyms = db.relationship("Acronym", back_populates="user")
    tokens = db.relationship(
        "Token", back_populates="user", cascade="all, delete-orphan"
    )

    def to_public(self) -> dict:
        """Return the redacted projection without the password hash."""
        return {"id": self.id, "name": self.name, "username": self.username}


class Token(db.Model):
    """Bearer credential issued to a user at login.

    ``value`` is the encoded JWT handed to the client and ``jti`` the unique
    identifier embedded in it. A bearer string is only accepted while a row
    with its ``jti`` exists (see ``token_in_blocklist_callback`` in
    :mod:`acronym_backend.app`).
    """

    id = db.Column(db.Integer, primary_key=True)
    value = db.Column(db.Text, nullable=False)
    jti = db.Column(db.String(36), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", back_populates="tokens")

    def to_dict(self) -> dict:
        return {"id": self.id, "value": self.value, "user": {"id": self.user_id}}


class Acronym(db.Model):
    """Short form and its expansion, owned by exactly one user."""

    id = db.Column(db.Integer, primary_key=True)
    short = db.Column(db.String(64), nullable=False, index=True)
    long = db.Column(db.String(256), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)

    user = db.relationship("User", back_populates="acronyms")
    categories = db.relationship(
        "Category", secondary=acronym_category, back_populates="acronyms"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "short": self.short,
            "long": self.long,
            "user": {"id": self.user_id},
        }


class Category(db.Model):
    """Label that can be attached to any number of acronyms."""

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)

    acronyms = db.relationship(
        "Acronym", secondary=acronym_category, back_populates="categories"
    )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}
