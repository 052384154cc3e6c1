from __future__ import annotations

import pytest

from util.permissions import ADMIN, BASIC_USER, Permission


@pytest.fixture
def admin_headers(store):
	admin = store.add_user(fullname="Admin", email="admin@example.com", permissions=ADMIN)
	store.add_token(admin, "admin-token")
	return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def basic_headers(store):
	user = store.add_user(fullname="Basic", email="basic@example.com", permissions=BASIC_USER)
	store.add_token(user, "basic-token")
	return {"Authorization": "Bearer basic-token"}


def test_admin_routes_require_auth(client):
	assert client.get("/admin/cache").status_code == 401
	assert client.post("/admin/cache/clear").status_code == 401


def test_admin_routes_require_administrator(client, basic_headers):
	for method, path in (("get", "/admin/cache"), ("post", "/admin/cache/clear"), ("post", "/admin/cache/cleanup")):
		resp = getattr(client, method)(path, headers=basic_headers)
		assert resp.status_code == 403
		assert resp.get_json() == {"error": "Forbidden: Missing permission", "code": 403}


def test_cache_stats(client, admin_headers):
	resp = client.get("/admin/cache", headers=admin_headers)
	assert resp.status_code == 200
	stats = resp.get_json()
	# the admin's own lookup populated the cache
	assert stats["size"] == 1
	assert stats["max_size"] == 10
	assert stats["ttl_seconds"] == 60


def test_cache_clear(client, admin_headers, session_cache):
	session_cache.set("other", object())
	resp = client.post("/admin/cache/clear", headers=admin_headers)
	assert resp.status_code == 200
	assert len(session_cache) == 0


def test_cache_cleanup(client, admin_headers, session_cache, clock):
	session_cache.set("old-1", 1)
	session_cache.set("old-2", 2)
	clock.advance(61)
	resp = client.post("/admin/cache/cleanup", headers=admin_headers)
	assert resp.status_code == 200
	assert resp.get_json() == {"ok": True, "removed": 2}
	assert len(session_cache) == 1  # the admin, re-cached by this request


def test_permission_listing_for_basic_user(client, basic_headers):
	resp = client.get("/admin/permissions", headers=basic_headers)
	assert resp.status_code == 200
	assert "Administrator" in resp.get_json()["permissions"]


def test_set_permissions(client, admin_headers, store, session_cache):
	target = store.add_user(fullname="Target", email="target@example.com")
	session_cache.set("target-token", target)

	resp = client.post(
		f"/admin/users/{target.id}/permissions",
		json={"permissions": int(Permission.MANAGE_MODELS | Permission.VIEW_MODELS)},
		headers=admin_headers,
	)
	assert resp.status_code == 200
	assert resp.get_json()["permissions"] == ["ViewModels", "ManageModels"]
	assert store.users[target.id].permissions == int(Permission.MANAGE_MODELS | Permission.VIEW_MODELS)
	assert session_cache.get("target-token") == (None, False)


def test_set_permissions_validation(client, admin_headers):
	resp = client.post("/admin/users/missing/permissions", json={"permissions": 1}, headers=admin_headers)
	assert resp.status_code == 404

	resp = client.post("/admin/users/missing/permissions", json={"permissions": "all"}, headers=admin_headers)
	assert resp.status_code == 400

	resp = client.post("/admin/users/missing/permissions", json={"permissions": True}, headers=admin_headers)
	assert resp.status_code == 400


def test_set_permissions_requires_manage_users(client, basic_headers, store):
	target = store.add_user(fullname="Target", email="target@example.com")
	resp = client.post(f"/admin/users/{target.id}/permissions", json={"permissions": 32}, headers=basic_headers)
	assert resp.status_code == 403


def test_set_permissions_rejects_non_object_body(client, admin_headers, store):
	target = store.add_user(fullname="Target", email="target@example.com")
	resp = client.post(f"/admin/users/{target.id}/permissions", json=[32], headers=admin_headers)
	assert resp.status_code == 400
	assert resp.get_json() == {"error": "Failed to parse request body", "code": 400}
	assert store.users[target.id].permissions != 32
