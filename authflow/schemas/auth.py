"""Authentication-related Marshmallow schemas.

Wire names are camelCase; loaded keys are the service DTO field names.
Presence rules are enforced by the service so its messages reach clients
unchanged; the schemas only bound lengths.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class RegisterSchema(Schema):
    """Multipart form fields for account registration (files travel apart)."""

    class Meta:
        unknown = EXCLUDE

    full_name = fields.String(
        data_key="fullName", load_default=None, validate=validate.Length(max=100)
    )
    email = fields.String(load_default=None, validate=validate.Length(max=254))
    username = fields.String(load_default=None, validate=validate.Length(max=50))
    password = fields.String(load_default=None, validate=validate.Length(max=128))


class LoginSchema(Schema):
    """Credentials: a username or an email, plus the password."""

    class Meta:
        unknown = EXCLUDE

    username = fields.String(load_default=None, allow_none=True)
    email = fields.String(load_default=None, allow_none=True)
    password = fields.String(load_default=None, allow_none=True)


class RefreshSchema(Schema):
    """Body fallback when the ``refreshToken`` cookie is absent."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(data_key="refreshToken", load_default=None, allow_none=True)


class TokenPairSchema(Schema):
    """Access/refresh pair as returned to clients."""

    access_token = fields.String(data_key="accessToken", required=True)
    refresh_token = fields.String(data_key="refreshToken", required=True)
