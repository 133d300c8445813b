"""Generate the OpenAPI specification for the acronym API using ``apispec``.

This module defines small Marshmallow schemas representing the payloads used by
the REST API and maps each Flask-RESTful resource to an OpenAPI path. Running
the script writes ``docs/openapi.yaml``; without that file the development
server builds the document on request.
"""

import os

from apispec import APISpec
from apispec.ext.marshmallow import MarshmallowPlugin
from marshmallow import Schema, fields


class AcronymRequestSchema(Schema):
    """Body accepted when creating or editing an acronym."""

    short = fields.Str(required=True)
    long = fields.Str(required=True)


class UserRefSchema(Schema):
    id = fields.Int()


class AcronymSchema(Schema):
    """Acronym as returned by the API."""

    id = fields.Int()
    short = fields.Str()
    long = fields.Str()
    user = fields.Nested(UserRefSchema)


class UserRequestSchema(Schema):
    """Fields required to create a user."""

    name = fields.Str(required=True)
    username = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class PublicUserSchema(Schema):
    """Redacted user; the password hash is never returned."""

    id = fields.Int()
    name = fields.Str()
    username = fields.Str()


class TokenSchema(Schema):
    """Bearer token issued by the login endpoint."""

    id = fields.Int()
    value = fields.Str()
    user = fields.Nested(UserRefSchema)


class CategoryRequestSchema(Schema):
    name = fields.Str(required=True)


class CategorySchema(Schema):
    id = fields.Int()
    name = fields.Str()


def _id_param(name: str) -> dict:
    return {"in": "path", "name": name, "schema": {"type": "integer"}, "required": True}


def _json_body(schema: str) -> dict:
    return {"required": True, "content": {"application/json": {"schema": schema}}}


def _ok(description: str, schema: str, many: bool = False) -> dict:
    body = {"type": "array", "items": schema} if many else schema
    return {
        "200": {"description": description, "content": {"application/json": {"schema": body}}}
    }


_NOT_FOUND = {"404": {"description": "Not found"}}
_UNAUTHORIZED = {"401": {"description": "Missing or invalid bearer token"}}


def build_spec() -> APISpec:
    """Return an APISpec describing all REST endpoints."""

    spec = APISpec(
        title="Acronym API",
        version="1.0.0",
        openapi_version="3.0.3",
        plugins=[MarshmallowPlugin()],
    )

    spec.components.security_scheme("bearerAuth", {"type": "http", "scheme": "bearer"})
    spec.components.security_scheme("basicAuth", {"type": "http", "scheme": "basic"})

    # Register schemas so they can be referenced in path definitions
    spec.components.schema("AcronymRequest", schema=AcronymRequestSchema)
    spec.components.schema("Acronym", schema=AcronymSchema)
    spec.components.schema("UserRequest", schema=UserRequestSchema)
    spec.components.schema("PublicUser", schema=PublicUserSchema)
    spec.components.schema("Token", schema=TokenSchema)
    spec.components.schema("CategoryRequest", schema=CategoryRequestSchema)
    spec.components.schema("Category", schema=CategorySchema)

    bearer = [{"bearerAuth": []}]

    # Each path definition below maps directly to a Flask-RESTful resource.
    spec.path(
        path="/api/acronyms",
        operations={
            "get": {"summary": "List acronyms", "responses": _ok("Acronyms", "Acronym", many=True)},
            "post": {
                "summary": "Create an acronym owned by the caller",
                "security": bearer,
                "requestBody": _json_body("AcronymRequest"),
                "responses": {**_ok("Created acronym", "Acronym"), **_UNAUTHORIZED},
            },
        },
    )
    spec.path(
        path="/api/acronyms/{acronym_id}",
        operations={
            "get": {
                "summary": "Fetch an acronym",
                "parameters": [_id_param("acronym_id")],
                "responses": {**_ok("Acronym", "Acronym"), **_NOT_FOUND},
            },
            "put": {
                "summary": "Edit an acronym; the caller becomes its owner",
                "security": bearer,
                "parameters": [_id_param("acronym_id")],
                "requestBody": _json_body("AcronymRequest"),
                "responses": {**_ok("Updated acronym", "Acronym"), **_NOT_FOUND, **_UNAUTHORIZED},
            },
            "delete": {
                "summary": "Delete an acronym",
                "security": bearer,
                "parameters": [_id_param("acronym_id")],
                "responses": {"204": {"description": "Deleted"}, **_NOT_FOUND, **_UNAUTHORIZED},
            },
        },
    )
    spec.path(
        path="/api/acronyms/search",
        operations={
            "get": {
                "summary": "Exact match on short or long form",
                "parameters": [
                    {"in": "query", "name": "term", "schema": {"type": "string"}, "required": True}
                ],
                "responses": {
                    **_ok("Matches", "Acronym", many=True),
                    "400": {"description": "Missing term"},
                },
            }
        },
    )
    spec.path(
        path="/api/acronyms/first",
        operations={
            "get": {"summary": "First acronym", "responses": {**_ok("Acronym", "Acronym"), **_NOT_FOUND}}
        },
    )
    spec.path(
        path="/api/acronyms/sorted",
        operations={
            "get": {
                "summary": "Acronyms sorted by short form",
                "responses": _ok("Acronyms", "Acronym", many=True),
            }
        },
    )
    spec.path(
        path="/api/acronyms/{acronym_id}/user",
        operations={
            "get": {
                "summary": "Owner of an acronym",
                "parameters": [_id_param("acronym_id")],
                "responses": {**_ok("Owner", "PublicUser"), **_NOT_FOUND},
            }
        },
    )
    spec.path(
        path="/api/acronyms/{acronym_id}/categories",
        operations={
            "get": {
                "summary": "Categories of an acronym",
                "parameters": [_id_param("acronym_id")],
                "responses": {**_ok("Categories", "Category", many=True), **_NOT_FOUND},
            }
        },
    )
    spec.path(
        path="/api/acronyms/{acronym_id}/categories/{category_id}",
        operations={
            "post": {
                "summary": "Attach a category",
                "security": bearer,
                "parameters": [_id_param("acronym_id"), _id_param("category_id")],
                "responses": {"201": {"description": "Attached"}, **_NOT_FOUND, **_UNAUTHORIZED},
            },
            "delete": {
                "summary": "Detach a category",
                "security": bearer,
                "parameters": [_id_param("acronym_id"), _id_param("category_id")],
                "responses": {"204": {"description": "Detached"}, **_NOT_FOUND, **_UNAUTHORIZED},
            },
        },
    )
    spec.path(
        path="/api/users",
        operations={
            "get": {
                "summary": "List users ordered by username",
                "responses": _ok("Users", "PublicUser", many=True),
            },
            "post": {
                "summary": "Create a user",
                "security": bearer,
                "requestBody": _json_body("UserRequest"),
                "responses": {
                    **_ok("Created user", "PublicUser"),
                    "400": {"description": "Invalid payload or username taken"},
                    **_UNAUTHORIZED,
                },
            },
        },
    )
    spec.path(
        path="/api/users/login",
        operations={
            "post": {
                "summary": "Exchange basic credentials for a bearer token",
                "security": [{"basicAuth": []}],
                "responses": {
                    **_ok("Token issued", "Token"),
                    "401": {"description": "Invalid username or password"},
                    "429": {"description": "Too many attempts"},
                },
            }
        },
    )
    spec.path(
        path="/api/users/{user_id}",
        operations={
            "get": {
                "summary": "Fetch a user",
                "parameters": [_id_param("user_id")],
                "responses": {**_ok("User", "PublicUser"), **_NOT_FOUND},
            }
        },
    )
    spec.path(
        path="/api/users/{user_id}/acronyms",
        operations={
            "get": {
                "summary": "Acronyms owned by a user",
                "parameters": [_id_param("user_id")],
                "responses": {**_ok("Acronyms", "Acronym", many=True), **_NOT_FOUND},
            }
        },
    )
    spec.path(
        path="/api/categories",
        operations={
            "get": {"summary": "List categories", "responses": _ok("Categories", "Category", many=True)},
            "post": {
                "summary": "Create a category",
                "security": bearer,
                "requestBody": _json_body("CategoryRequest"),
                "responses": {**_ok("Created category", "Category"), **_UNAUTHORIZED},
            },
        },
    )
    spec.path(
        path="/api/categories/{category_id}",
        operations={
            "get": {
                "summary": "Fetch a category",
                "parameters": [_id_param("category_id")],
                "responses": {**_ok("Category", "Category"), **_NOT_FOUND},
            }
        },
    )
    spec.path(
        path="/api/categories/{category_id}/acronyms",
        operations={
            "get": {
                "summary": "Acronyms tagged with a category",
                "parameters": [_id_param("category_id")],
                "responses": {**_ok("Acronyms", "Acronym", many=True), **_NOT_FOUND},
            }
        },
    )

    return spec


if __name__ == "__main__":
    spec = build_spec()
    os.makedirs("docs", exist_ok=True)
    with open(os.path.join("docs", "openapi.yaml"), "w") as fh:
        fh.write(spec.to_yaml())
