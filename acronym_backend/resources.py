"""REST API resources for the acronym backend.

This module defines the Flask-RESTful resources registered by
:mod:`acronym_backend.app`. Resources decode the request, apply the auth gate
and hand off to the services in :mod:`acronym_backend.services`; they never
query the database themselves.

Reads are public. Writes require a bearer token obtained from
``POST /api/users/login`` and are decorated with ``@jwt_required()``; the
authenticated user is taken from ``current_user`` and passed to the service
as the principal. Login itself uses HTTP basic credentials and is rate
limited to slow down password guessing.
"""

from flask import request
from flask_jwt_extended import current_user, jwt_required
from flask_restful import Resource, reqparse
from werkzeug.exceptions import BadRequest

from .app import app, db, limiter, LOGIN_RATE_LIMIT
from .services import AcronymService, CategoryService, UserService


def json_string(value):
    """Accept only JSON strings; reqparse turns the ``ValueError`` into 400."""
    if not isinstance(value, str):
        raise ValueError("Must be a string.")
    return value


# Request parser shared by acronym create and update
acronym_parser = reqparse.RequestParser()
acronym_parser.add_argument(
    "short", type=json_string, required=True, nullable=False, location="json",
    help="Short form is required and must be a string.",
)
acronym_parser.add_argument(
    "long", type=json_string, required=True, nullable=False, location="json",
    help="Long form is required and must be a string.",
)

user_parser = reqparse.RequestParser()
for _field in ("name", "username", "password"):
    user_parser.add_argument(
        _field, type=json_string, required=True, nullable=False, location="json"
    )

category_parser = reqparse.RequestParser()
category_parser.add_argument(
    "name", type=json_string, required=True, nullable=False, location="json",
    help="Name is required and must be a string.",
)


def parse_json(parser):
    """Parse a JSON body with ``parser``; other content types are a 400."""
    if not request.is_json:
        raise BadRequest("Request body must be JSON.")
    return parser.parse_args()


def acronym_service() -> AcronymService:
    return AcronymService(db.session)


def user_service() -> UserService:
    return UserService(db.session)


def category_service() -> CategoryService:
    return CategoryService(db.session)


# --- Acronyms ---------------------------------------------------------------


class Acronyms(Resource):
    """List all acronyms or create a new one."""

    def get(self):
        return [a.to_dict() for a in acronym_service().list_all()]

    @jwt_required()
    def post(self):
        """Create an acronym owned by the calling user."""
        data = parse_json(acronym_parser)
        acronym = acronym_service().create(data["short"], data["long"], current_user)
        app.logger.info("User %s created acronym %s", current_user.id, acronym.id)
        return acronym.to_dict()


class AcronymResource(Resource):
    """Fetch, edit or delete a single acronym."""

    def get(self, acronym_id):
        return acronym_service().get(acronym_id).to_dict()

    @jwt_required()
    def put(self, acronym_id):
        """Replace the short and long form.

        The caller becomes the owner of the acronym.
        """
        data = parse_json(acronym_parser)
        acronym = acronym_service().update(
            acronym_id, data["short"], data["long"], current_user
        )
        return acronym.to_dict()

    @jwt_required()
    def delete(self, acronym_id):
        acronym_service().delete(acronym_id)
        app.logger.info("User %s deleted acronym %s", current_user.id, acronym_id)
        return "", 204


class AcronymSearch(Resource):
    """Exact-match search on either form of the acronym."""

    def get(self):
        term = request.args.get("term")
        return [a.to_dict() for a in acronym_service().search(term)]


class AcronymFirst(Resource):
    def get(self):
        return acronym_service().first().to_dict()


class AcronymSorted(Resource):
    """All acronyms ordered by short form."""

    def get(self):
        return [a.to_dict() for a in acronym_service().sorted()]


class AcronymUser(Resource):
    """Return the owner of an acronym as a public user record."""

    def get(self, acronym_id):
        return acronym_service().get_owner(acronym_id).to_public()


class AcronymCategories(Resource):
    def get(self, acronym_id):
        return [c.to_dict() for c in acronym_service().list_categories(acronym_id)]


class AcronymCategory(Resource):
    """Attach or detach a category from an acronym."""

    @jwt_required()
    def post(self, acronym_id, category_id):
        acronym_service().add_category(acronym_id, category_id)
        return "", 201

    @jwt_required()
    def delete(self, acronym_id, category_id):
        acronym_service().remove_category(acronym_id, category_id)
        return "", 204


# --- Users ------------------------------------------------------------------


class Users(Resource):
    """List users or create a new account.

    Creating accounts requires a bearer token, so the very first account is
    made with the ``flask create-admin`` command.
    """

    def get(self):
        return [u.to_public() for u in user_service().list_all()]

    @jwt_required()
    def post(self):
        data = parse_json(user_parser)
        user = user_service().create(data["username"], data["name"], data["password"])
        app.logger.info("User %s created account %s", current_user.id, user.id)
        return user.to_public()


class UserResource(Resource):
    def get(self, user_id):
        return user_service().get(user_id).to_public()


class UserAcronyms(Resource):
    """Acronyms currently owned by a user."""

    def get(self, user_id):
        return [a.to_dict() for a in user_service().list_acronyms(user_id)]


class Login(Resource):
    """Exchange HTTP basic credentials for a bearer token."""

    # Limit the frequency of login attempts to mitigate brute-force attacks.
    decorators = [limiter.limit(LOGIN_RATE_LIMIT)]

    def post(self):
        auth = request.authorization
        service = user_service()
        user = None
        if auth is not None and auth.type == "basic":
            user = service.authenticate(auth.username or "", auth.password or "")
        if user is None:
            app.logger.warning("Rejected login attempt")
            return (
                {"message": "Invalid username or password"},
                401,
                {"WWW-Authenticate": 'Basic realm="acronyms"'},
            )
        return service.login(user).to_dict()


# --- Categories -------------------------------------------------------------


class Categories(Resource):
    """List categories or create a new one."""

    def get(self):
        return [c.to_dict() for c in category_service().list_all()]

    @jwt_required()
    def post(self):
        data = parse_json(category_parser)
        return category_service().create(data["name"]).to_dict()


class CategoryResource(Resource):
    def get(self, category_id):
        return category_service().get(category_id).to_dict()


class CategoryAcronyms(Resource):
    """Acronyms tagged with a category."""

    def get(self, category_id):
        return [a.to_dict() for a in category_service().list_acronyms(category_id)]
