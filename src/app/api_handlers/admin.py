from __future__ import annotations

import logging

import flask

from app.api_common import json_error, require_permission
from app.api_context import ApiContext
from util.permissions import Permission, all_permission_names, permission_names

logger = logging.getLogger(__name__)


def register(api: flask.Blueprint, ctx: ApiContext) -> None:
	@api.route("/admin/cache", methods=["GET"])
	def api_admin_cache_stats():
		_, err = require_permission(ctx, Permission.ADMINISTRATOR)
		if err:
			return err
		return flask.jsonify(ctx.cache.stats()), 200

	@api.route("/admin/cache/clear", methods=["POST"])
	def api_admin_cache_clear():
		user, err = require_permission(ctx, Permission.ADMINISTRATOR)
		if err:
			return err
		ctx.cache.clear()
		logger.info("Session cache cleared by %s", user.id)
		return flask.jsonify({"ok": True}), 200

	@api.route("/admin/cache/cleanup", methods=["POST"])
	def api_admin_cache_cleanup():
		_, err = require_permission(ctx, Permission.ADMINISTRATOR)
		if err:
			return err
		removed = ctx.cache.cleanup()
		return flask.jsonify({"ok": True, "removed": removed}), 200

	@api.route("/admin/permissions", methods=["GET"])
	def api_admin_permissions():
		_, err = require_permission(ctx, Permission.VIEW_USERS)
		if err:
			return err
		return flask.jsonify({"permissions": all_permission_names()}), 200

	@api.route("/admin/users/<user_id>/permissions", methods=["POST"])
	def api_admin_set_permissions(user_id: str):
		_, err = require_permission(ctx, Permission.MANAGE_USERS)
		if err:
			return err

		data = flask.request.get_json(silent=True)
		if not isinstance(data, dict):
			return json_error("Failed to parse request body", 400)
		value = data.get("permissions")
		if isinstance(value, bool) or not isinstance(value, int) or value < 0:
			return json_error("permissions must be a non-negative integer", 400)

		if not ctx.store.update_permissions(user_id, value):
			return json_error("User not found", 404)

		# Cached users are keyed by token, so a per-user eviction is not possible.
		ctx.cache.clear()
		logger.info("Permissions for %s set to %s", user_id, permission_names(value))
		return flask.jsonify({"ok": True, "permissions": permission_names(value)}), 200
