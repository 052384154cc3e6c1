import logging
from math import ceil

from psycopg2 import sql
from psycopg2.pool import ThreadedConnectionPool

logger = logging.getLogger(__name__)


class PSQLClient:
	"""
	Thin psycopg2 pool wrapper. Every helper returns rows as list[dict].
	One client per process; pass it to whatever needs the database.
	"""
	def __init__(
		self,
		database: str = "postgres",
		user: str = "postgres",
		password: str | None = None,
		host: str | None = None,
		port: int | None = None,
		minconn: int = 1,
		maxconn: int = 10,
	):
		self.database = database
		self.user = user

		conn_kwargs = {"database": database, "user": user}
		# Local socket auth needs none of these.
		if password:
			conn_kwargs["password"] = password
		if host:
			conn_kwargs["host"] = host
		if port:
			conn_kwargs["port"] = port

		self.pool = ThreadedConnectionPool(minconn, maxconn, **conn_kwargs)
		logger.info("Connection pool opened for database '%s' (%d-%d).", database, minconn, maxconn)

	def close(self) -> None:
		self.pool.closeall()

	def _execute(self, query, params: list | None = None) -> list[dict] | None:
		conn = self.pool.getconn()
		try:
			with conn.cursor() as cur:
				cur.execute(query, params or [])
				if cur.description is None:
					conn.commit()
					return None
				colnames = [d[0] for d in cur.description]
				rows = cur.fetchall()
				# DML with RETURNING still needs a commit
				status = (cur.statusmessage or "").upper()
				if status.startswith(("INSERT", "UPDATE", "DELETE")):
					conn.commit()
				return [dict(zip(colnames, r)) for r in rows]
		except Exception:
			conn.rollback()
			raise
		finally:
			self.pool.putconn(conn)

	# ---------- DDL ----------
	def ensure_table(
		self,
		schema: str,
		table: str,
		columns: dict[str, str],  # e.g. {"id":"CHAR(36) PRIMARY KEY"}
	) -> None:
		if not columns:
			raise ValueError("columns must be a non-empty dict of {name: SQL type/constraint}.")
		col_bits = [
			sql.SQL("{} {}").format(sql.Identifier(name), sql.SQL(type_sql))
			for name, type_sql in columns.items()
		]
		q = sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
			sql.Identifier(schema),
			sql.Identifier(table),
			sql.SQL(", ").join(col_bits),
		)
		self._execute(q)

	def create_index(self, schema: str, table: str, index_name: str, columns: list[str]) -> None:
		if not columns:
			raise ValueError("columns must be a non-empty list of column names.")
		q = sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {}.{} ({})").format(
			sql.Identifier(index_name),
			sql.Identifier(schema),
			sql.Identifier(table),
			sql.SQL(", ").join(sql.Identifier(c) for c in columns),
		)
		self._execute(q)

	# ---------- Rows ----------
	def _where(self, equalities: dict | None, raw_conditions: str | list[str] | None, raw_params: list | None):
		parts = []
		params = []
		for k, v in (equalities or {}).items():
			parts.append(sql.SQL("{} = {}").format(sql.Identifier(k), sql.Placeholder()))
			params.append(v)
		if raw_conditions:
			if isinstance(raw_conditions, str):
				raw_conditions = [raw_conditions]
			parts.extend(sql.SQL(frag) for frag in raw_conditions)
			params.extend(raw_params or [])
		if not parts:
			return sql.SQL(""), params
		return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(parts), params

	def insert_row(self, table: str, data: dict) -> dict | None:
		if not data:
			raise ValueError("Data dictionary is empty.")
		columns = list(data.keys())
		query = sql.SQL("INSERT INTO {tbl} ({fields}) VALUES ({placeholders}) RETURNING *").format(
			tbl=sql.Identifier(table),
			fields=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
			placeholders=sql.SQL(", ").join(sql.Placeholder() for _ in columns),
		)
		result = self._execute(query, list(data.values()))
		return result[0] if result else None

	def get_rows_with_filters(
		self,
		table: str,
		equalities: dict | None = None,                 # {"col": val, ...}
		raw_conditions: str | list[str] | None = None,  # SQL fragments (without 'WHERE')
		raw_params: list | None = None,                 # params for raw_conditions, in order
		page_limit: int = 50,
	) -> tuple[list[dict], int]:
		"""
		Returns (rows, total_pages); ([], 0) when nothing matches.
		"""
		if not isinstance(page_limit, int) or page_limit <= 0:
			raise ValueError("page_limit must be a positive integer.")

		where_sql, params = self._where(equalities, raw_conditions, raw_params)
		tbl = sql.Identifier(table)

		count = self._execute(sql.SQL("SELECT COUNT(*) AS cnt FROM {}").format(tbl) + where_sql, params)
		total = int(count[0]["cnt"]) if count else 0
		if total == 0:
			return [], 0

		q = sql.SQL("SELECT * FROM {}").format(tbl) + where_sql + sql.SQL(" LIMIT %s")
		rows = self._execute(q, params + [page_limit]) or []
		return rows, ceil(total / page_limit)

	def delete_rows_with_filters(
		self,
		table: str,
		equalities: dict | None = None,
		raw_conditions: str | list[str] | None = None,
		raw_params: list | None = None,
	) -> int:
		"""Returns the number of rows deleted. Refuses to run without a filter."""
		if not equalities and not raw_conditions:
			raise ValueError("Provide at least one of 'equalities' or 'raw_conditions'.")
		where_sql, params = self._where(equalities, raw_conditions, raw_params)
		q = sql.SQL("DELETE FROM {}").format(sql.Identifier(table)) + where_sql + sql.SQL(" RETURNING 1")
		result = self._execute(q, params)
		return len(result) if result else 0

	def update_rows_with_equalities(self, table: str, updates: dict, equalities: dict) -> int:
		if not updates:
			raise ValueError("Updates dictionary is empty.")
		if not equalities:
			raise ValueError("Conditions dictionary is empty.")
		set_sql = sql.SQL(", ").join(
			sql.SQL("{} = {}").format(sql.Identifier(k), sql.Placeholder()) for k in updates
		)
		where_sql, params = self._where(equalities, None, None)
		q = sql.SQL("UPDATE {} SET ").format(sql.Identifier(table)) + set_sql + where_sql + sql.SQL(" RETURNING 1")
		result = self._execute(q, list(updates.values()) + params)
		return len(result) if result else 0
