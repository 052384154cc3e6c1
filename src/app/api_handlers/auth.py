from __future__ import annotations

import logging
from email.utils import parseaddr

import flask

from app.api_common import (
	clear_auth_cookie,
	get_request_token,
	get_request_user,
	json_error,
	set_auth_cookie,
)
from app.api_context import ApiContext
from sql.models import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _parse_email(raw: str) -> str | None:
	_, addr = parseaddr(raw or "")
	local, sep, domain = addr.partition("@")
	if not sep or not local or not domain or " " in addr:
		return None
	return addr


def _string_fields(data: dict, *names: str) -> list[str] | None:
	"""Missing or null fields read as ''; any other non-string makes the body invalid."""
	values = []
	for name in names:
		value = data.get(name)
		if value is None:
			value = ""
		elif not isinstance(value, str):
			return None
		values.append(value)
	return values


def _already_logged_in(ctx: ApiContext) -> bool:
	token = get_request_token()
	return bool(token) and ctx.store.is_token_valid(token)


def _issue_session(ctx: ApiContext, user: User):
	"""
	Create a token for `user`, cache the user under it and build the response.
	"""
	user_token = ctx.store.create_token(user.id)
	if user_token is None or not user_token.token:
		logger.error("Failed to create auth token for user %s", user.id)
		return json_error("Failed to create auth token", 500)

	ctx.cache.set(user_token.token, user)

	resp = flask.make_response(flask.jsonify({
		"fullname": user.fullname,
		"email": user.email,
		"token": user_token.token,
		"id": user.id,
		"success": True,
	}))
	set_auth_cookie(resp, ctx, user_token.token, user_token.expires_at)
	return resp, 200


def register(api: flask.Blueprint, ctx: ApiContext) -> None:
	@api.route("/auth/register", methods=["POST"])
	def api_auth_register():
		if ctx.store is None:
			return json_error("Database not initialized", 500)
		if _already_logged_in(ctx):
			return json_error("You are already logged in", 400)

		data = flask.request.get_json(silent=True)
		if not isinstance(data, dict):
			return json_error("Failed to parse request body", 400)

		fields = _string_fields(data, "fullname", "email", "password")
		if fields is None:
			return json_error("Failed to parse request body", 400)
		fullname, email, password = fields
		fullname = fullname.strip()
		email = email.strip()
		if not fullname or not email or not password:
			return json_error("Fullname, email and password are required", 400)
		if len(password) < MIN_PASSWORD_LENGTH:
			return json_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long", 400)

		address = _parse_email(email)
		if address is None:
			return json_error("Invalid email address", 400)
		if ctx.store.get_user_by_email(address) is not None:
			return json_error("Email already in use", 400)

		user = ctx.store.create_user(fullname, address, password)
		return _issue_session(ctx, user)

	@api.route("/auth/login", methods=["POST"])
	def api_auth_login():
		if ctx.store is None:
			return json_error("Database not initialized", 500)
		if _already_logged_in(ctx):
			return json_error("You are already logged in", 400)

		data = flask.request.get_json(silent=True)
		if not isinstance(data, dict):
			return json_error("Failed to parse request body", 400)

		fields = _string_fields(data, "email", "password")
		if fields is None:
			return json_error("Failed to parse request body", 400)
		email, password = fields
		email = email.strip()
		if not email or not password:
			return json_error("Email and password are required", 400)

		user = ctx.store.get_user_by_email(email)
		if user is None:
			logger.info("Login attempt failed: No user found with email '%s'", email.lower())
			return json_error("Invalid email or password", 401)
		if not ctx.store.check_password(user, password):
			logger.info("Login attempt failed: Incorrect password for user with email '%s'", email.lower())
			return json_error("Invalid email or password", 401)

		logger.info("Login attempt successful for user with email '%s'", email.lower())
		return _issue_session(ctx, user)

	@api.route("/auth/logout", methods=["GET", "POST"])
	def api_auth_logout():
		user, err = get_request_user(ctx)
		if err:
			return err

		token = get_request_token()
		ctx.store.delete_token(token)
		# The cached entry must go too, or the token would keep working until its TTL ran out.
		ctx.cache.delete(token)
		logger.info("User %s logged out.", user.id)

		resp = flask.make_response(flask.jsonify({"message": "logged out"}))
		clear_auth_cookie(resp, ctx)
		return resp, 200

	@api.route("/auth/me", methods=["GET"])
	def api_auth_me():
		user, err = get_request_user(ctx)
		if err:
			return err
		payload = user.to_public()
		payload["success"] = True
		return flask.jsonify(payload), 200
