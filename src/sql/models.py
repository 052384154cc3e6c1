from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime

from util.permissions import BASIC_USER, permission_names


@dataclass(frozen=True)
class User:
	id: str
	fullname: str
	email: str
	password_hash: str
	permissions: int = int(BASIC_USER)
	created_at: datetime | None = None

	@classmethod
	def from_row(cls, row: dict) -> User:
		return cls(
			id=str(row["id"]),
			fullname=row["fullname"],
			email=row["email"],
			password_hash=row["password_hash"],
			permissions=int(row.get("permissions") or 0),
			created_at=row.get("created_at"),
		)

	def to_public(self) -> dict:
		return {
			"id": self.id,
			"fullname": self.fullname,
			"email": self.email,
			"permissions": permission_names(self.permissions),
		}


@dataclass(frozen=True)
class UserToken:
	user_id: str
	token: str
	expires_at: int  # unix seconds

	@classmethod
	def from_row(cls, row: dict) -> UserToken:
		return cls(
			user_id=str(row["user_id"]),
			token=row["token"],
			expires_at=int(row["expires_at"]),
		)

	def is_expired(self, now: float | None = None) -> bool:
		now = time.time() if now is None else now
		return self.expires_at <= now
