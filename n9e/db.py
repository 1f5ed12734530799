"""SQLite-backed storage, shared query helpers and the key/value configs table."""

from __future__ import annotations

import hashlib
import os
import secrets
import socket
import sqlite3
import string
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_PASS_PEPPER = "<-*Uk30^96eY*->"

# table -> (primary key column or None, text columns, integer columns)
_TABLES: dict[str, tuple[str | None, str, str]] = {
    "configs": ("id", "ckey cval", ""),
    "users": (
        "id",
        "username nickname password phone email portrait roles contacts create_by update_by",
        "maintainer create_at update_at",
    ),
    "user_group": ("id", "name note create_by update_by", "create_at update_at"),
    "user_group_member": (None, "", "group_id user_id"),
    "role": ("id", "name note", ""),
    "role_operation": (None, "role_name operation", ""),
    "busi_group": (
        "id",
        "name label_value create_by update_by",
        "label_enable create_at update_at",
    ),
    "busi_group_member": (None, "perm_flag", "busi_group_id user_group_id"),
    "target": ("id", "cluster ident note tags", "group_id update_at"),
    "dashboard": (
        "id",
        "name tags configs create_by update_by",
        "group_id create_at update_at",
    ),
    "task_tpl": (
        "id",
        "title pause script args tags account create_by update_by",
        "group_id batch tolerance timeout create_at update_at",
    ),
    "alert_rule": (
        "id",
        "cluster name note prod algorithm algo_params prom_ql enable_stime enable_etime "
        "enable_days_of_week notify_channels notify_groups callbacks runbook_url "
        "append_tags create_by update_by",
        "group_id delay severity disabled prom_for_duration prom_eval_interval enable_in_bg "
        "notify_recovered notify_repeat_step notify_max_number recover_duration "
        "create_at update_at",
    ),
    "alert_mute": (
        "id",
        "prod cluster tags cause create_by",
        "group_id btime etime create_at",
    ),
    "alert_subscribe": (
        "id",
        "cluster tags new_channels user_group_ids create_by update_by",
        "group_id rule_id redefine_severity new_severity redefine_channels create_at update_at",
    ),
    "alert_cur_event": (
        "id",
        "cluster group_name hash rule_name rule_note rule_prod rule_algo prom_ql callbacks "
        "runbook_url notify_channels notify_groups target_ident target_note trigger_value tags",
        "group_id rule_id severity prom_for_duration prom_eval_interval notify_recovered "
        "trigger_time notify_cur_number",
    ),
    "alert_his_event": (
        "id",
        "cluster group_name hash rule_name rule_note rule_prod rule_algo prom_ql callbacks "
        "runbook_url notify_channels notify_groups target_ident target_note trigger_value tags",
        "is_recovered group_id rule_id severity prom_for_duration prom_eval_interval "
        "notify_recovered trigger_time recover_time last_eval_time notify_cur_number",
    ),
    "alert_aggr_view": ("id", "name rule", "cate create_at create_by update_at"),
    "metric_view": ("id", "name configs", "cate create_at create_by update_at"),
    "recording_rule": (
        "id",
        "cluster name note prom_ql append_tags create_by update_by",
        "group_id disabled prom_eval_interval create_at update_at",
    ),
}


def _schema() -> Iterator[str]:
    for table, (pk, text_cols, int_cols) in _TABLES.items():
        columns = []
        if pk:
            columns.append(f"{pk} INTEGER PRIMARY KEY AUTOINCREMENT")
        columns += [f"{name} TEXT NOT NULL DEFAULT ''" for name in text_cols.split()]
        columns += [f"{name} INTEGER NOT NULL DEFAULT 0" for name in int_cols.split()]
        yield f"CREATE TABLE IF NOT EXISTS {table} ({', '.join(columns)})"


class ModelError(Exception):
    """Raised when a model operation or a database call fails."""


@dataclass
class Statistics:
    """Row count and the latest update time of a table."""

    total: int = 0
    last_updated: int = 0


def _expand(sql: str, args: tuple[Any, ...]) -> tuple[str, list[Any]]:
    """Expand sequence arguments into placeholder lists, as for ``id in ?``."""
    parts = sql.split("?")
    if len(parts) - 1 != len(args):
        raise ModelError(f"expected {len(parts) - 1} arguments, got {len(args)}")
    out = [parts[0]]
    flat: list[Any] = []
    for arg, tail in zip(args, parts[1:]):
        if isinstance(arg, (list, tuple, set, frozenset)):
            items = list(arg)
            marks = ", ".join("?" * len(items)) if items else "NULL"
            if out[-1].rstrip().endswith("(") and tail.lstrip().startswith(")"):
                out.append(marks)
            else:
                out.append(f"({marks})")
            flat.extend(items)
        else:
            out.append("?")
            flat.append(arg)
        out.append(tail)
    return "".join(out), flat


class Database:
    """A connection to the model store with the schema in place."""

    def __init__(self, path: str = ":memory:") -> None:
        try:
            self._conn = sqlite3.connect(path, isolation_level=None)
        except sqlite3.Error as err:
            raise ModelError(f"cannot open database: {err}") from err
        self._conn.row_factory = sqlite3.Row
        self._depth = 0
        for statement in _schema():
            self._conn.execute(statement)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def execute(self, sql: str, *args: Any) -> sqlite3.Cursor:
        query, params = _expand(sql, args)
        try:
            return self._conn.execute(query, params)
        except sqlite3.Error as err:
            raise ModelError(str(err)) from err

    def query(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        return [dict(row) for row in self.execute(sql, *args).fetchall()]

    def count(self, sql: str, *args: Any) -> int:
        """Number of rows the SELECT statement ``sql`` yields."""
        row = self.execute(f"SELECT COUNT(*) FROM ({sql})", *args).fetchone()
        return int(row[0])

    def exists(self, sql: str, *args: Any) -> bool:
        return self.count(sql, *args) > 0

    def insert(self, table: str, values: dict[str, Any]) -> int:
        """Insert one row and return its row id."""
        columns = list(values)
        marks = ", ".join("?" * len(columns))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({marks})"
        try:
            cursor = self._conn.execute(sql, [values[c] for c in columns])
        except sqlite3.Error as err:
            raise ModelError(str(err)) from err
        return int(cursor.lastrowid or 0)

    def update(self, table: str, values: dict[str, Any], where: str = "", *args: Any) -> int:
        if not values:
            return 0
        assignments = ", ".join(f"{column} = ?" for column in values)
        sql = f"UPDATE {table} SET {assignments}"
        if where:
            sql += f" WHERE {where}"
        return self.execute(sql, *values.values(), *args).rowcount

    def delete(self, table: str, where: str = "", *args: Any) -> int:
        sql = f"DELETE FROM {table}"
        if where:
            sql += f" WHERE {where}"
        return self.execute(sql, *args).rowcount

    def statistics(self, table: str, column: str, where: str = "", *args: Any) -> Statistics:
        sql = f"SELECT COUNT(*), MAX({column}) FROM {table}"
        if where:
            sql += f" WHERE {where}"
        total, last = self.execute(sql, *args).fetchone()
        return Statistics(total=int(total or 0), last_updated=int(last or 0))

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run the block atomically; nested blocks join the outer one."""
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return
        self._conn.execute("BEGIN")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")
        finally:
            self._depth = 0


def configs_get(db: Database, ckey: str) -> str:
    rows = db.query("SELECT cval FROM configs WHERE ckey = ?", ckey)
    return rows[0]["cval"] if rows else ""


def configs_set(db: Database, ckey: str, cval: str) -> None:
    if db.exists("SELECT 1 FROM configs WHERE ckey = ?", ckey):
        db.update("configs", {"cval": cval}, "ckey = ?", ckey)
    else:
        db.insert("configs", {"ckey": ckey, "cval": cval})


def configs_gets(db: Database, ckeys: list[str]) -> dict[str, str]:
    result = {key: "" for key in ckeys}
    for row in db.query("SELECT ckey, cval FROM configs WHERE ckey in ?", list(ckeys)):
        result[row["ckey"]] = row["cval"]
    return result


def init_salt(db: Database) -> str:
    """Create the password salt if none is stored; return the stored salt."""
    salt = configs_get(db, "salt")
    if salt:
        return salt
    letters = "".join(secrets.choice(string.ascii_letters) for _ in range(6))
    content = f"{socket.gethostname()}{os.getpid()}{time.time_ns()}{letters}"
    salt = hashlib.md5(content.encode()).hexdigest()
    configs_set(db, "salt", salt)
    return salt


def crypto_pass(db: Database, raw: str) -> str:
    """Hash a password with the stored salt."""
    salt = configs_get(db, "salt")
    return hashlib.md5((salt + _PASS_PEPPER + raw).encode()).hexdigest()