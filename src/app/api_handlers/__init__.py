from __future__ import annotations

from app.api_context import ApiContext


def register_all(api, ctx: ApiContext) -> None:
	from app.api_handlers import (
		admin,
		auth,
		ping,
	)

	ping.register(api, ctx)
	auth.register(api, ctx)
	admin.register(api, ctx)
