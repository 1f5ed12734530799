"""Monitored targets (hosts) and their tags."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from n9e.busi_group import BusiGroup, busi_group_get_by_id
from n9e.db import Database, Statistics

_COLUMNS = ("group_id", "cluster", "ident", "note", "tags", "update_at")


@dataclass
class Target:
    """A monitored host, identified by its ident."""

    id: int = 0
    group_id: int = 0
    group_obj: BusiGroup | None = field(default=None, compare=False)
    cluster: str = ""
    ident: str = ""
    note: str = ""
    tags: str = ""
    tags_json: list[str] = field(default_factory=list)
    tags_map: dict[str, str] = field(default_factory=dict, compare=False)
    update_at: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Target":
        target = cls(id=row["id"], **{column: row[column] for column in _COLUMNS})
        target.tags_json = target.tags.split()
        return target

    def add(self, db: Database) -> None:
        """Insert the target, or move an existing ident to this target's cluster."""
        existing = target_get(db, "ident = ?", self.ident)
        if existing is None:
            self.id = db.insert("target", {c: getattr(self, c) for c in _COLUMNS})
            return
        self.id = existing.id
        if existing.cluster != self.cluster:
            db.update(
                "target",
                {"cluster": self.cluster, "update_at": self.update_at},
                "ident = ?",
                self.ident,
            )

    def fill_group(self, db: Database, cache: dict[int, BusiGroup | None]) -> None:
        if self.group_id <= 0:
            return
        if self.group_id in cache:
            self.group_obj = cache[self.group_id]
            return
        group = busi_group_get_by_id(db, self.group_id)
        self.group_obj = group
        cache[self.group_id] = group

    def _save_tags(self, db: Database, tags: str) -> None:
        self.tags = tags
        self.tags_json = tags.split()
        self.update_at = int(time.time())
        db.update("target", {"tags": tags, "update_at": self.update_at}, "id = ?", self.id)

    def add_tags(self, db: Database, tags: list[str]) -> None:
        current = self.tags
        for tag in tags:
            if f"{tag} " not in current:
                current += f"{tag} "
        self._save_tags(db, " ".join(sorted(current.split())) + " ")

    def del_tags(self, db: Database, tags: list[str]) -> None:
        current = self.tags
        for tag in tags:
            current = current.replace(f"{tag} ", "")
        self._save_tags(db, current)


def target_statistics(db: Database, cluster: str = "") -> Statistics:
    if cluster:
        return db.statistics("target", "update_at", "cluster = ?", cluster)
    return db.statistics("target", "update_at")


def target_del(db: Database, idents: list[str]) -> None:
    if not idents:
        raise ValueError("idents empty")
    db.delete("target", "ident in ?", list(idents))


def _build_where(bgid: int, clusters: list[str], query: str) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    args: list[Any] = []
    if bgid >= 0:
        clauses.append("group_id = ?")
        args.append(bgid)
    if clusters:
        clauses.append("cluster in ?")
        args.append(list(clusters))
    for word in query.split():
        like = f"%{word}%"
        clauses.append("(ident like ? or note like ? or tags like ?)")
        args += [like, like, like]
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, args


def target_total(db: Database, bgid: int, clusters: list[str], query: str) -> int:
    where, args = _build_where(bgid, clusters, query)
    return db.count(f"SELECT 1 FROM target{where}", *args)


def target_gets(
    db: Database, bgid: int, clusters: list[str], query: str, limit: int, offset: int
) -> list[Target]:
    where, args = _build_where(bgid, clusters, query)
    rows = db.query(
        f"SELECT * FROM target{where} ORDER BY ident LIMIT ? OFFSET ?", *args, limit, offset
    )
    return [Target.from_row(row) for row in rows]


def target_gets_by_cluster(db: Database, cluster: str = "") -> list[Target]:
    if cluster:
        rows = db.query("SELECT * FROM target WHERE cluster = ?", cluster)
    else:
        rows = db.query("SELECT * FROM target")
    return [Target.from_row(row) for row in rows]


def target_update_note(db: Database, idents: list[str], note: str) -> None:
    db.update(
        "target",
        {"note": note, "update_at": int(time.time())},
        "ident in ?",
        list(idents),
    )


def target_update_bgid(db: Database, idents: list[str], bgid: int, clear_tags: bool) -> None:
    values: dict[str, Any] = {"group_id": bgid, "update_at": int(time.time())}
    if clear_tags:
        values["tags"] = ""
    db.update("target", values, "ident in ?", list(idents))


def target_get(db: Database, where: str, *args: Any) -> Target | None:
    rows = db.query(f"SELECT * FROM target WHERE {where}", *args)
    return Target.from_row(rows[0]) if rows else None


def target_get_by_id(db: Database, target_id: int) -> Target | None:
    return target_get(db, "id = ?", target_id)


def target_get_by_ident(db: Database, ident: str) -> Target | None:
    return target_get(db, "ident = ?", ident)


def target_get_tags(db: Database, idents: list[str]) -> list[str]:
    """Sorted union of the tags of the given targets."""
    if not idents:
        return []
    rows = db.query("SELECT DISTINCT tags FROM target WHERE ident in ?", list(idents))
    found = {tag for row in rows for tag in row["tags"].split()}
    return sorted(found)


def target_idents(db: Database, ids: list[int]) -> list[str]:
    if not ids:
        return []
    rows = db.query("SELECT ident FROM target WHERE id in ?", list(ids))
    return [row["ident"] for row in rows]


def target_ids(db: Database, idents: list[str]) -> list[int]:
    if not idents:
        return []
    rows = db.query("SELECT id FROM target WHERE ident in ?", list(idents))
    return [row["id"] for row in rows]


def idents_filter(db: Database, idents: list[str], where: str, *args: Any) -> list[str]:
    """The given idents whose targets also match ``where``."""
    if not idents:
        return []
    rows = db.query(
        f"SELECT ident FROM target WHERE ident in ? AND ({where})", list(idents), *args
    )
    return [row["ident"] for row in rows]