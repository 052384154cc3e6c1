import bcrypt
import logging
import secrets
import string
import time
import uuid
from datetime import datetime, timezone

from sql.models import User, UserToken
from sql.psql_client import PSQLClient
from util.permissions import BASIC_USER

logger = logging.getLogger(__name__)

TOKEN_CHARSET = string.ascii_letters + string.digits

USERS_TABLE = "users"
TOKENS_TABLE = "user_tokens"

_USERS_COLUMNS = {
	"id":            "CHAR(36) PRIMARY KEY",
	"fullname":      "VARCHAR(255) NOT NULL",
	"email":         "VARCHAR(255) NOT NULL UNIQUE",
	"password_hash": "VARCHAR(255) NOT NULL",
	"permissions":   f"INTEGER NOT NULL DEFAULT {int(BASIC_USER)}",
	"created_at":    "TIMESTAMPTZ NOT NULL DEFAULT NOW()",
}

_TOKENS_COLUMNS = {
	"id":         "BIGSERIAL PRIMARY KEY",
	"user_id":    f"CHAR(36) NOT NULL REFERENCES {USERS_TABLE} (id) ON DELETE CASCADE",
	"token":      "VARCHAR(128) NOT NULL UNIQUE",
	"expires_at": "BIGINT NOT NULL",
	"created_at": "TIMESTAMPTZ NOT NULL DEFAULT NOW()",
}


class PSQLInterface:
	"""
	Authentication store: users and their opaque auth tokens.
	Knows nothing about the session cache; callers populate it after a lookup.
	"""
	def __init__(
		self,
		client: PSQLClient,
		*,
		token_ttl_days: int = 7,
		token_length: int = 64,
		bcrypt_rounds: int = 12,
	):
		self._client = client
		self.token_ttl_seconds = int(token_ttl_days) * 24 * 60 * 60
		self.token_length = int(token_length)
		self.bcrypt_rounds = int(bcrypt_rounds)

	@property
	def client(self):
		return self._client

	def verify_tables(self, schema: str = "public") -> None:
		self._client.ensure_table(schema, USERS_TABLE, _USERS_COLUMNS)
		self._client.ensure_table(schema, TOKENS_TABLE, _TOKENS_COLUMNS)
		self._client.create_index(schema, TOKENS_TABLE, "user_tokens_user_id_idx", ["user_id"])
		self._client.create_index(schema, TOKENS_TABLE, "user_tokens_expires_at_idx", ["expires_at"])
		logger.info("Verified tables %s.%s and %s.%s", schema, USERS_TABLE, schema, TOKENS_TABLE)

	# ---------- Users ----------
	def hash_password(self, password: str) -> str:
		return bcrypt.hashpw(
			password.encode("utf-8"),
			bcrypt.gensalt(rounds=self.bcrypt_rounds),
		).decode("utf-8")

	def check_password(self, user: User, password: str) -> bool:
		if not user.password_hash or not password:
			return False
		try:
			return bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8"))
		except ValueError:
			logger.warning("Stored password hash for user %s is not a bcrypt hash.", user.id)
			return False

	def create_user(self, fullname: str, email: str, password: str, permissions: int = BASIC_USER) -> User:
		row = self._client.insert_row(USERS_TABLE, {
			"id": str(uuid.uuid4()),
			"fullname": fullname.strip(),
			"email": email.strip().lower(),
			"password_hash": self.hash_password(password),
			"permissions": int(permissions),
			"created_at": datetime.now(timezone.utc),
		})
		user = User.from_row(row)
		logger.info("Created user %s <%s>", user.id, user.email)
		return user

	def _get_user(self, equalities: dict) -> User | None:
		rows, _ = self._client.get_rows_with_filters(USERS_TABLE, equalities=equalities, page_limit=1)
		return User.from_row(rows[0]) if rows else None

	def get_user_by_email(self, email: str) -> User | None:
		return self._get_user({"email": (email or "").strip().lower()})

	def get_user_by_id(self, user_id: str) -> User | None:
		return self._get_user({"id": str(user_id)})

	def update_permissions(self, user_id: str, permissions: int) -> bool:
		updated = self._client.update_rows_with_equalities(
			USERS_TABLE,
			{"permissions": int(permissions)},
			{"id": str(user_id)},
		)
		return updated > 0

	# ---------- Tokens ----------
	def _generate_token(self) -> str:
		return "".join(secrets.choice(TOKEN_CHARSET) for _ in range(self.token_length))

	def create_token(self, user_id: str) -> UserToken | None:
		"""
		Issue a new token for an existing user, or None if the user does not exist.
		"""
		if self.get_user_by_id(user_id) is None:
			logger.warning("Refusing to create a token for unknown user %s", user_id)
			return None

		token = self._generate_token()
		while self.get_token(token) is not None:
			token = self._generate_token()

		row = self._client.insert_row(TOKENS_TABLE, {
			"user_id": str(user_id),
			"token": token,
			"expires_at": int(time.time()) + self.token_ttl_seconds,
		})
		return UserToken.from_row(row)

	def get_token(self, token: str) -> UserToken | None:
		if not token:
			return None
		rows, _ = self._client.get_rows_with_filters(TOKENS_TABLE, equalities={"token": token}, page_limit=1)
		return UserToken.from_row(rows[0]) if rows else None

	def is_token_valid(self, token: str) -> bool:
		if not token:
			return False
		rows, _ = self._client.get_rows_with_filters(
			TOKENS_TABLE,
			equalities={"token": token},
			raw_conditions="expires_at > %s",
			raw_params=[int(time.time())],
			page_limit=1,
		)
		return bool(rows)

	def delete_token(self, token: str) -> int:
		if not token:
			return 0
		return self._client.delete_rows_with_filters(TOKENS_TABLE, equalities={"token": token})

	def expire_tokens(self) -> int:
		removed = self._client.delete_rows_with_filters(
			TOKENS_TABLE,
			raw_conditions="expires_at < %s",
			raw_params=[int(time.time())],
		)
		if removed:
			logger.info("Purged %d expired auth tokens.", removed)
		return removed

	def close(self) -> None:
		self._client.close()
