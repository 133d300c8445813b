"""Application object and global extensions for the acronym backend.

This module configures the Flask application serving the REST API. Database
sessions, JWT authentication, CORS and rate limiting are initialized here and
the Flask-RESTful resources from :mod:`acronym_backend.resources` are mounted
under ``/api``.

Bearer tokens are JWTs issued at login without an expiry. A token is only
honoured while the :class:`~acronym_backend.models.Token` row recording its
``jti`` exists, so the persisted token table is the source of truth for
authentication rather than the signature alone.

Cross-origin requests are disabled until the ``CORS_ORIGINS`` environment
variable explicitly lists allowed origins.
"""

import os
from pathlib import Path

import click
import sentry_sdk
from dotenv import load_dotenv
from flask import Flask, Response, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_restful import Api
from flask_sqlalchemy import SQLAlchemy
from jwt.exceptions import PyJWTError
from sentry_sdk.integrations.flask import FlaskIntegration

# Load environment variables from a .env file if present.  This keeps
# secret values such as JWT_SECRET_KEY out of source control.
load_dotenv()

# Initialize Sentry for error monitoring when a DSN is provided
sentry_dsn = os.environ.get("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=1.0,
    )

app = Flask(__name__)
# Initialize application-wide logging before other components.
from .logging_config import init_logging

init_logging()


# A comma separated list in ``CORS_ORIGINS`` restricts cross-origin traffic.
# Without an explicit setting no origin is allowed.
_cors_origins = os.environ.get("CORS_ORIGINS")
if _cors_origins:
    _cors_origins = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]
else:
    _cors_origins = []

CORS(app, origins=_cors_origins)


def _apply_security_headers(resp):
    """Attach common security headers to every HTTP response.

    ``CONTENT_SECURITY_POLICY`` overrides the default policy and
    ``HSTS_ENABLED=true`` adds ``Strict-Transport-Security``.
    """

    csp = os.environ.get("CONTENT_SECURITY_POLICY", "default-src 'none'")
    hsts_enabled = os.environ.get("HSTS_ENABLED", "false").lower() == "true"

    resp.headers.setdefault("Content-Security-Policy", csp)
    resp.headers.setdefault("X-Content-Type-Options", "nosniff")
    resp.headers.setdefault("X-Frame-Options", "DENY")
    resp.headers.setdefault("Referrer-Policy", "no-referrer")
    resp.headers.setdefault("Cache-Control", "no-store")
    if hsts_enabled:
        resp.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )
    return resp


app.after_request(_apply_security_headers)


def rate_limit_key():
    """Return the authenticated user id, or the client address when anonymous."""
    try:
        verify_jwt_in_request(optional=True)
        identity = get_jwt_identity()
        if identity:
            return identity
    except (JWTExtendedException, PyJWTError):
        pass
    return get_remote_address()


_redis_url = os.environ.get("REDIS_URL")
_limiter_kwargs = {"key_func": rate_limit_key, "app": app}
if _redis_url:
    _limiter_kwargs["storage_uri"] = _redis_url
limiter = Limiter(**_limiter_kwargs)

LOGIN_RATE_LIMIT = os.environ.get("LOGIN_RATE_LIMIT", "10/minute")

# Configure app settings. Values can be overridden via environment variables.
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
    "DATABASE_URI", "sqlite:///acronyms.db"
)
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
_jwt_secret = os.environ.get("JWT_SECRET_KEY")
if not _jwt_secret:
    raise RuntimeError("JWT_SECRET_KEY environment variable not set")
app.config["JWT_SECRET_KEY"] = _jwt_secret
app.config["JWT_TOKEN_LOCATION"] = ["headers"]
# Tokens never expire on their own; only the persisted Token row decides.
app.config["JWT_ACCESS_TOKEN_EXPIRES"] = False
# Let Flask-JWT-Extended errors reach their handlers instead of being turned
# into 500 responses by Flask-RESTful.
app.config["PROPAGATE_EXCEPTIONS"] = True

# Initialize database and migration tools
db = SQLAlchemy(app)
migrate = Migrate(app, db)

api = Api(app)

jwt = JWTManager(app)


@jwt.token_in_blocklist_loader
def token_in_blocklist_callback(jwt_header, jwt_payload):
    """Reject bearer tokens whose ``jti`` has no persisted Token row."""
    from .models import Token

    return Token.query.filter_by(jti=jwt_payload.get("jti")).first() is None


@jwt.invalid_token_loader
def invalid_token_callback(reason):
    """Answer malformed or foreign-signed bearer tokens with 401, not 422."""
    return {"msg": reason}, 401


@jwt.user_lookup_loader
def user_lookup_callback(jwt_header, jwt_payload):
    """Resolve the principal exposed as ``current_user``."""
    from .models import User

    try:
        return db.session.get(User, int(jwt_payload["sub"]))
    except (TypeError, ValueError):
        return None


@app.cli.command("create-admin")
@click.option("--username", default="admin", show_default=True)
@click.password_option(envvar="ADMIN_PASSWORD")
def create_admin_command(username, password):
    """Create the first account so tokens can be issued."""
    from .services import UserService

    user, created = UserService(db.session).create_admin(username, password)
    if created:
        click.echo(f"Created user {user.username} with id {user.id}.")
    else:
        click.echo(f"User {user.username} already exists.")


# Import resources after initializing app components to avoid circular imports
from .resources import (
    Acronyms,
    AcronymResource,
    AcronymSearch,
    AcronymFirst,
    AcronymSorted,
    AcronymUser,
    AcronymCategories,
    AcronymCategory,
    Users,
    UserResource,
    UserAcronyms,
    Login,
    Categories,
    CategoryResource,
    CategoryAcronyms,
)


# Register resources and routes. Integer converters keep ``search``,
# ``first`` and ``sorted`` from being read as acronym ids.
api.add_resource(Acronyms, "/api/acronyms")
api.add_resource(AcronymSearch, "/api/acronyms/search")
api.add_resource(AcronymFirst, "/api/acronyms/first")
api.add_resource(AcronymSorted, "/api/acronyms/sorted")
api.add_resource(AcronymResource, "/api/acronyms/<int:acronym_id>")
api.add_resource(AcronymUser, "/api/acronyms/<int:acronym_id>/user")
api.add_resource(AcronymCategories, "/api/acronyms/<int:acronym_id>/categories")
api.add_resource(
    AcronymCategory, "/api/acronyms/<int:acronym_id>/categories/<int:category_id>"
)
api.add_resource(Users, "/api/users")
api.add_resource(Login, "/api/users/login")
api.add_resource(UserResource, "/api/users/<int:user_id>")
api.add_resource(UserAcronyms, "/api/users/<int:user_id>/acronyms")
api.add_resource(Categories, "/api/categories")
api.add_resource(CategoryResource, "/api/categories/<int:category_id>")
api.add_resource(CategoryAcronyms, "/api/categories/<int:category_id>/acronyms")


# Serve the OpenAPI spec and minimal Swagger UI. A pre-generated
# ``docs/openapi.yaml`` wins over building the document per request.
@app.route("/api/openapi.yaml")
def openapi_spec():
    """Return the OpenAPI specification YAML."""
    docs_path = Path(__file__).resolve().parent.parent / "docs"
    if (docs_path / "openapi.yaml").exists():
        return send_from_directory(docs_path, "openapi.yaml")
    from .generate_openapi import build_spec

    return Response(build_spec().to_yaml(), mimetype="application/yaml")


@app.route("/api/docs")
def api_docs():
    """Serve an embedded Swagger UI for browsing the API."""
    return """<!DOCTYPE html><html><head><title>API Docs</title><link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/swagger-ui-dist/swagger-ui.css"></head><body><div id="swagger-ui"></div><script src="https://cdn.jsdelivr.net/npm/swagger-ui-dist/swagger-ui-bundle.js"></script><script>SwaggerUIBundle({url:"/api/openapi.yaml",dom_id:"#swagger-ui"});</script></body></html>"""


# Run the development server only when executed directly.
if __name__ == "__main__":
    with app.app_context():
        db.create_all()
    app.run(debug=os.getenv("FLASK_DEBUG") == "1")
