from __future__ import annotations

import sys
import time
import uuid
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
	sys.path.insert(0, str(SRC_ROOT))

from sql.models import User, UserToken  # noqa: E402
from util.config_reader import AppConfig  # noqa: E402
from util.permissions import BASIC_USER  # noqa: E402
from util.session_cache import SessionCache  # noqa: E402


class FakeClock:
	def __init__(self, start: float = 0.0):
		self.now = start

	def __call__(self) -> float:
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += seconds


class FakeStore:
	"""In-memory stand-in for PSQLInterface with call counters."""
	def __init__(self):
		self.users: dict[str, User] = {}
		self.tokens: dict[str, UserToken] = {}
		self.calls: dict[str, int] = {}
		self.fail_with: Exception | None = None
		self.closed = False

	def _hit(self, name: str) -> None:
		self.calls[name] = self.calls.get(name, 0) + 1
		if self.fail_with is not None:
			raise self.fail_with

	def add_user(self, fullname="Robbie Tester", email="user@example.com", password="password123", permissions=BASIC_USER) -> User:
		user = User(
			id=str(uuid.uuid4()),
			fullname=fullname,
			email=email.lower(),
			password_hash=f"plain:{password}",
			permissions=int(permissions),
		)
		self.users[user.id] = user
		return user

	def add_token(self, user: User, token: str, expires_at: int | None = None) -> UserToken:
		ut = UserToken(user_id=user.id, token=token, expires_at=expires_at or int(time.time()) + 3600)
		self.tokens[token] = ut
		return ut

	def create_user(self, fullname, email, password, permissions=BASIC_USER):
		self._hit("create_user")
		return self.add_user(fullname=fullname, email=email, password=password, permissions=permissions)

	def get_user_by_email(self, email):
		self._hit("get_user_by_email")
		email = (email or "").strip().lower()
		return next((u for u in self.users.values() if u.email == email), None)

	def get_user_by_id(self, user_id):
		self._hit("get_user_by_id")
		return self.users.get(user_id)

	def check_password(self, user, password):
		return user.password_hash == f"plain:{password}"

	def update_permissions(self, user_id, permissions):
		self._hit("update_permissions")
		user = self.users.get(user_id)
		if user is None:
			return False
		self.users[user_id] = User(
			id=user.id,
			fullname=user.fullname,
			email=user.email,
			password_hash=user.password_hash,
			permissions=int(permissions),
		)
		return True

	def create_token(self, user_id):
		self._hit("create_token")
		if user_id not in self.users:
			return None
		return self.add_token(self.users[user_id], uuid.uuid4().hex + uuid.uuid4().hex)

	def get_token(self, token):
		self._hit("get_token")
		return self.tokens.get(token)

	def is_token_valid(self, token):
		self._hit("is_token_valid")
		ut = self.tokens.get(token)
		return ut is not None and not ut.is_expired()

	def delete_token(self, token):
		self._hit("delete_token")
		return 1 if self.tokens.pop(token, None) else 0

	def expire_tokens(self):
		self._hit("expire_tokens")
		expired = [t for t, ut in self.tokens.items() if ut.is_expired()]
		for t in expired:
			del self.tokens[t]
		return len(expired)

	def close(self):
		self.closed = True


@pytest.fixture
def clock():
	return FakeClock(start=1000.0)


@pytest.fixture
def store():
	return FakeStore()


@pytest.fixture
def test_config():
	return AppConfig(start_workers=False, bcrypt_rounds=4, log_level="DEBUG")


@pytest.fixture
def session_cache(clock):
	return SessionCache(max_size=10, ttl_seconds=60, now=clock)


@pytest.fixture
def app(test_config, store, session_cache):
	from app import create_app

	flask_app = create_app(test_config, store=store, cache=session_cache)
	flask_app.config["TESTING"] = True
	return flask_app


@pytest.fixture
def client(app):
	return app.test_client()
