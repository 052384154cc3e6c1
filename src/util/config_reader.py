import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Mapping

ENV_PREFIX = "CMS_"
DEFAULT_CONFIG_FILE = "server.conf"


class _DirNS:
	"""
	A directory namespace:
	- get_raw(filename)
	- get_kv_config(filename)     # key=value lines
	- resolve(filename)           # path in this namespace
	"""
	def __init__(self, base: Path):
		self.base = base

	def _resolve(self, filename: str) -> Path:
		p = self.base / filename
		if p.exists():
			return p
		# fallback: match by stem if no suffix was given
		if not Path(filename).suffix and self.base.is_dir():
			candidates = [f for f in self.base.iterdir() if f.stem == filename]
			if len(candidates) == 1:
				return candidates[0]
			if candidates:
				raise FileNotFoundError(f"Multiple files match stem '{filename}' in {self.base}")
		raise FileNotFoundError(f"File '{filename}' not found in {self.base}")

	def get_raw(self, filename: str) -> str:
		return self._resolve(filename).read_text(encoding="utf-8")

	def get_kv_config(self, filename: str) -> Dict[str, str]:
		return parse_kv_config(self.get_raw(filename))

	def resolve(self, filename: str) -> Path:
		return self._resolve(filename)


def parse_kv_config(raw: str) -> Dict[str, str]:
	out: Dict[str, str] = {}
	for line in raw.splitlines():
		s = line.strip()
		if not s or s.startswith("#"):
			continue
		if "=" not in s:
			raise ValueError(f"Invalid config line: '{line}'")
		k, v = s.split("=", 1)
		out[k.strip().upper()] = v.strip()
	return out


class ConfigReader:
	"""
	Config reader with named directory namespaces under src/.
	Usage:
		ConfigReader().config_dir.get_kv_config("server.conf")
	"""
	_NAMESPACES = {
		"config_dir": "config",
	}

	@staticmethod
	def _base_dir() -> Path:
		return Path(__file__).resolve().parent.parent

	@classmethod
	def _ns(cls, name: str) -> _DirNS:
		sub = cls._NAMESPACES.get(name)
		if sub is None:
			raise KeyError(f"Unknown namespace '{name}'")
		return _DirNS(cls._base_dir() / sub)

	@property
	def config_dir(self) -> _DirNS:
		return self._ns("config_dir")


@dataclass
class AppConfig:
	# database
	database: str = "postgres"
	user: str = "postgres"
	password: str | None = None
	host: str | None = None
	port: int | None = None
	db_minconn: int = 1
	db_maxconn: int = 10

	# auth
	auth_cookie_name: str = "chukfi_token"
	auth_cookie_domain: str | None = None
	auth_cookie_secure: bool = False
	token_ttl_days: int = 7
	token_length: int = 64
	bcrypt_rounds: int = 12

	# session cache
	cache_max_size: int = 100
	cache_ttl_seconds: int = 30 * 60
	cache_cleanup_interval_seconds: int = 10 * 60
	token_purge_interval_seconds: int = 60 * 60
	start_workers: bool = True

	# http
	cors_allow_origin: str = "*"
	log_level: str = "INFO"

	def db_kwargs(self) -> dict:
		kwargs = {"database": self.database, "user": self.user}
		if self.password:
			kwargs["password"] = self.password
		if self.host:
			kwargs["host"] = self.host
		if self.port:
			kwargs["port"] = self.port
		return kwargs


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _coerce(name: str, raw: str, default):
	field_type = AppConfig.__dataclass_fields__[name].type
	if raw == "" and default is None:
		return None
	if isinstance(default, bool) or "bool" in str(field_type):
		low = raw.lower()
		if low in _TRUE:
			return True
		if low in _FALSE:
			return False
		raise ValueError(f"Invalid boolean for {name.upper()}: '{raw}'")
	if isinstance(default, int) or "int" in str(field_type):
		try:
			return int(raw)
		except ValueError:
			raise ValueError(f"Invalid integer for {name.upper()}: '{raw}'") from None
	return raw


def load_config(path: str | Path | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
	"""
	Build an AppConfig from, in increasing priority:
	1. dataclass defaults
	2. a key=value file (`path`, or src/config/server.conf when it exists)
	3. CMS_<KEY> environment variables
	Unknown keys in the file are ignored.
	"""
	env_vars = os.environ if env is None else env
	values: Dict[str, str] = {}

	if path is not None:
		values.update(parse_kv_config(Path(path).read_text(encoding="utf-8")))
	else:
		try:
			values.update(ConfigReader().config_dir.get_kv_config(DEFAULT_CONFIG_FILE))
		except FileNotFoundError:
			pass

	for key, raw in env_vars.items():
		if key.startswith(ENV_PREFIX):
			values[key[len(ENV_PREFIX):].upper()] = raw.strip()

	config = AppConfig()
	for f in fields(AppConfig):
		raw = values.get(f.name.upper())
		if raw is None:
			continue
		setattr(config, f.name, _coerce(f.name, raw, getattr(config, f.name)))
	return config
