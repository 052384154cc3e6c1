from enum import IntFlag


class Permission(IntFlag):
	VIEW_DASHBOARD = 1 << 0
	VIEW_MODELS    = 1 << 1
	VIEW_USERS     = 1 << 2
	MANAGE_USERS   = 1 << 3
	MANAGE_MODELS  = 1 << 4
	ADMINISTRATOR  = 1 << 5


BASIC_USER = Permission.VIEW_DASHBOARD | Permission.VIEW_MODELS | Permission.VIEW_USERS
ADMIN = Permission.ADMINISTRATOR

_NAMES = {
	Permission.VIEW_DASHBOARD: "ViewDashboard",
	Permission.VIEW_MODELS:    "ViewModels",
	Permission.VIEW_USERS:     "ViewUsers",
	Permission.MANAGE_USERS:   "ManageUsers",
	Permission.MANAGE_MODELS:  "ManageModels",
	Permission.ADMINISTRATOR:  "Administrator",
}

# Listing order used by the API.
_ORDER = [
	Permission.VIEW_DASHBOARD,
	Permission.ADMINISTRATOR,
	Permission.VIEW_MODELS,
	Permission.VIEW_USERS,
	Permission.MANAGE_USERS,
	Permission.MANAGE_MODELS,
]


def has_permission(user_permissions: int, required: int) -> bool:
	"""
	True if `user_permissions` holds every bit in `required`.
	Administrator holds everything.
	"""
	user_permissions = int(user_permissions)
	required = int(required)
	if user_permissions & ADMIN == ADMIN:
		return True
	return user_permissions & required == required


def permission_to_name(permission: int) -> str:
	try:
		return _NAMES.get(Permission(permission), "Unknown")
	except ValueError:
		return "Unknown"


def all_permission_names() -> list[str]:
	return [permission_to_name(p) for p in _ORDER]


def permission_names(user_permissions: int) -> list[str]:
	return [permission_to_name(p) for p in _ORDER if has_permission(user_permissions, p)]
