from __future__ import annotations

import logging
from typing import Any

import flask

from app.api_context import ApiContext
from sql.models import User
from util.permissions import has_permission

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


def json_error(message: str, code: int) -> tuple[Any, int]:
	return flask.jsonify({"error": message, "code": code}), code


def extract_auth_token(cookie_name: str) -> str | None:
	"""
	Auth token from the auth cookie, falling back to the Authorization header.
	"""
	token = flask.request.cookies.get(cookie_name)
	if token:
		return token
	header = flask.request.headers.get("Authorization", "")
	if header:
		return header.replace(_BEARER_PREFIX, "", 1).strip() or None
	return None


def get_request_token() -> str | None:
	return getattr(flask.g, "auth_token", None)


def lookup_user(ctx: ApiContext, token: str) -> tuple[User | None, str | None]:
	"""
	Read-through lookup: session cache first, then the auth store.
	Returns (user, None) on success, (None, reason) otherwise.
	"""
	cached, found = ctx.cache.get(token)
	if found:
		logger.debug("Session cache hit.")
		return cached, None

	logger.debug("Session cache miss; checking auth store.")
	user_token = ctx.store.get_token(token)
	if user_token is None:
		return None, "Unauthorized: Invalid auth token"
	if user_token.is_expired():
		return None, "Unauthorized: Auth token expired"

	user = ctx.store.get_user_by_id(user_token.user_id)
	if user is None:
		return None, "Unauthorized: Invalid auth token"

	ctx.cache.set(token, user)
	return user, None


def get_request_user(ctx: ApiContext) -> tuple[User | None, tuple[Any, int] | None]:
	"""
	Resolve the authenticated user for this request, setting flask.g.user.
	Returns (user, None) or (None, error_response).
	"""
	token = get_request_token()
	if not token:
		return None, json_error("Unauthorized: No auth token provided", 401)
	if ctx.store is None:
		return None, json_error("Database not initialized", 500)

	user, reason = lookup_user(ctx, token)
	if user is None:
		return None, json_error(reason, 401)

	flask.g.user = user
	return user, None


def require_permission(ctx: ApiContext, permission: int) -> tuple[User | None, tuple[Any, int] | None]:
	user, err = get_request_user(ctx)
	if err:
		return None, err
	if not has_permission(user.permissions, permission):
		return None, json_error("Forbidden: Missing permission", 403)
	return user, None


def set_auth_cookie(resp: flask.Response, ctx: ApiContext, token: str, expires_at: int) -> None:
	resp.set_cookie(
		key=ctx.auth_token_name,
		value=token,
		expires=expires_at,
		httponly=True,
		secure=ctx.config.auth_cookie_secure,
		samesite="Lax",
		domain=ctx.config.auth_cookie_domain or None,
		path="/",
	)


def clear_auth_cookie(resp: flask.Response, ctx: ApiContext) -> None:
	resp.set_cookie(
		ctx.auth_token_name,
		"",
		expires=0,
		httponly=True,
		secure=ctx.config.auth_cookie_secure,
		samesite="Lax",
		domain=ctx.config.auth_cookie_domain or None,
		path="/",
	)
