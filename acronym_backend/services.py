"""Use cases behind the REST resources.

Each service wraps the SQLAlchemy session it is constructed with and performs
one or two store operations per call. Protected operations receive the
authenticated :class:`~acronym_backend.models.User` as an explicit
``principal`` argument; the services never read authentication state from the
request themselves.

Failures are raised as Werkzeug HTTP exceptions (``NotFound``,
``BadRequest``, ``InternalServerError``) which Flask-RESTful renders as JSON
responses with the matching status code.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from flask_jwt_extended import create_access_token, get_jti
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest, InternalServerError, NotFound

from .models import Acronym, Category, Token, User

logger = logging.getLogger(__name__)

# Argon2 hasher used for every stored password. ``PasswordHasher`` generates a
# random salt and encodes all parameters within the returned string.
password_hasher = PasswordHasher()


def verify_password(stored_hash: str, candidate: str) -> bool:
    """Return ``True`` when ``candidate`` matches ``stored_hash``.

    Mismatches, malformed digests and non-string candidates all count as a
    failed verification rather than an error.
    """
    if not isinstance(candidate, str):
        return False
    try:
        return password_hasher.verify(stored_hash, candidate)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


class _Service:
    """Shared session handling for the concrete services."""

    def __init__(self, session):
        self.session = session

    def _find(self, model, ident: int, message: str = "Not found"):
        record = self.session.get(model, ident)
        if record is None:
            raise NotFound(message)
        return record

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to %s", action)
            self.session.rollback()
            raise InternalServerError(f"Failed to {action}.")


class AcronymService(_Service):
    """CRUD, search and relationship operations for acronyms."""

    def list_all(self) -> List[Acronym]:
        return self.session.query(Acronym).all()

    def create(self, short: str, long: str, principal: User) -> Acronym:
        """Persist a new acronym owned by ``principal``."""
        acronym = Acronym(short=short, long=long, user_id=principal.id)
        self.session.add(acronym)
        self._commit("create acronym")
        return acronym

    def get(self, acronym_id: int) -> Acronym:
        return self._find(Acronym, acronym_id, "Acronym not found")

    def update(self, acronym_id: int, short: str, long: str, principal: User) -> Acronym:
        """Overwrite ``short`` and ``long`` of an acronym.

        Ownership moves to ``principal``: whoever edits an acronym becomes its
        owner, regardless of who created it.
        """
        acronym = self.get(acronym_id)
        acronym.short = short
        acronym.long = long
        acronym.user_id = principal.id
        self._commit("update acronym")
        return acronym

    def delete(self, acronym_id: int) -> None:
        acronym = self.get(acronym_id)
        self.session.delete(acronym)
        self._commit("delete acronym")

    def search(self, term: Optional[str]) -> List[Acronym]:
        """Return acronyms whose short or long form equals ``term`` exactly."""
        if not term:
            raise BadRequest("Query parameter 'term' is required.")
        return (
            self.session.query(Acronym)
            .filter(or_(Acronym.short == term, Acronym.long == term))
            .all()
        )

    def first(self) -> Acronym:
        acronym = self.session.query(Acronym).order_by(Acronym.id).first()
        if acronym is None:
            raise NotFound("No acronyms")
        return acronym

    def sorted(self) -> List[Acronym]:
        return self.session.query(Acronym).order_by(Acronym.short.asc()).all()

    def get_owner(self, acronym_id: int) -> User:
        return self.get(acronym_id).user

    def list_categories(self, acronym_id: int) -> List[Category]:
        return list(self.get(acronym_id).categories)

    def _pair(self, acronym_id: int, category_id: int) -> Tuple[Acronym, Category]:
        # Both lookups finish before any mutation so a missing side leaves
        # the association untouched.
        acronym = self.session.get(Acronym, acronym_id)
        category = self.session.get(Category, category_id)
        if acronym is None:
            raise NotFound("Acronym not found")
        if category is None:
            raise NotFound("Category not found")
        return acronym, category

    def add_category(self, acronym_id: int, category_id: int) -> None:
        """Attach a category; attaching an existing pair is a no-op."""
        acronym, category = self._pair(acronym_id, category_id)
        if category not in acronym.categories:
            acronym.categories.append(category)
            self._commit("attach category")

    def remove_category(self, acronym_id: int, category_id: int) -> None:
        """Detach a category; detaching a missing pair is a no-op."""
        acronym, category = self._pair(acronym_id, category_id)
        if category in acronym.categories:
            acronym.categories.remove(category)
            self._commit("detach category")


class UserService(_Service):
    """Account creation, lookup and token issuance."""

    def create(self, username: str, name: str, raw_password: str) -> User:
        """Create a user with an Argon2 hash of ``raw_password``."""
        if self.session.query(User).filter_by(username=username).first():
            raise BadRequest("A user with that username already exists.")
        user = User(
            username=username,
            name=name,
            password_hash=password_hasher.hash(raw_password),
        )
        self.session.add(user)
        self._commit("create user")
        return user

    def list_all(self) -> List[User]:
        return self.session.query(User).order_by(User.username.asc()).all()

    def get(self, user_id: int) -> User:
        return self._find(User, user_id, "User not found")

    def list_acronyms(self, user_id: int) -> List[Acronym]:
        return list(self.get(user_id).acronyms)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user matching the basic credentials, else ``None``."""
        user = self.session.query(User).filter_by(username=username).first()
        if user and verify_password(user.password_hash, password):
            return user
        return None

    def login(self, principal: User) -> Token:
        """Issue and persist a new bearer token for ``principal``.

        Tokens carry no expiry. Earlier tokens of the same user stay valid.
        """
        value = create_access_token(identity=str(principal.id), expires_delta=False)
        token = Token(value=value, jti=get_jti(value), user_id=principal.id)
        self.session.add(token)
        self._commit("issue token")
        return token

    def create_admin(self, username: str, password: str) -> Tuple[User, bool]:
        """Create the bootstrap account unless ``username`` already exists.

        Returns the user and whether it was created by this call.
        """
        existing = self.session.query(User).filter_by(username=username).first()
        if existing is not None:
            return existing, False
        return self.create(username=username, name="Admin", raw_password=password), True


class CategoryService(_Service):
    """Create and browse categories."""

    def create(self, name: str) -> Category:
        category = Category(name=name)
        self.session.add(category)
        self._commit("create category")
        return category

    def list_all(self) -> List[Category]:
        return self.session.query(Category).all()

    def get(self, category_id: int) -> Category:
        return self._find(Category, category_id, "Category not found")

    def list_acronyms(self, category_id: int) -> List[Acronym]:
        return list(self.get(category_id).acronyms)
