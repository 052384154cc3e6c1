from __future__ import annotations

from dataclasses import dataclass

from sql.psql_interface import PSQLInterface
from util.config_reader import AppConfig
from util.session_cache import SessionCache


@dataclass
class ApiContext:
	store: PSQLInterface | None
	cache: SessionCache
	config: AppConfig

	@property
	def auth_token_name(self) -> str:
		return self.config.auth_cookie_name
