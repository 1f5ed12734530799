import pytest

from n9e.alert_cur_event import (
    AggrRule,
    AlertCurEvent,
    alert_cur_event_del,
    alert_cur_event_del_by_hash,
    alert_cur_event_exists,
    alert_cur_event_get,
    alert_cur_event_get_all,
    alert_cur_event_get_by_id,
    alert_cur_event_get_by_ids,
    alert_cur_event_get_by_rule,
    alert_cur_event_get_map,
    alert_cur_event_gets,
    alert_cur_event_total,
    alert_numbers,
)
from n9e.db import Database
from n9e.user_group import UserGroup

_EVENT_TABLE = """
CREATE TABLE IF NOT EXISTS alert_cur_event (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    cluster TEXT NOT NULL DEFAULT '',
    group_id INTEGER NOT NULL DEFAULT 0,
    group_name TEXT NOT NULL DEFAULT '',
    hash TEXT NOT NULL DEFAULT '',
    rule_id INTEGER NOT NULL DEFAULT 0,
    rule_name TEXT NOT NULL DEFAULT '',
    rule_note TEXT NOT NULL DEFAULT '',
    rule_prod TEXT NOT NULL DEFAULT '',
    rule_algo TEXT NOT NULL DEFAULT '',
    severity INTEGER NOT NULL DEFAULT 0,
    prom_for_duration INTEGER NOT NULL DEFAULT 0,
    prom_ql TEXT NOT NULL DEFAULT '',
    prom_eval_interval INTEGER NOT NULL DEFAULT 0,
    callbacks TEXT NOT NULL DEFAULT '',
    runbook_url TEXT NOT NULL DEFAULT '',
    notify_recovered INTEGER NOT NULL DEFAULT 0,
    notify_channels TEXT NOT NULL DEFAULT '',
    notify_groups TEXT NOT NULL DEFAULT '',
    target_ident TEXT NOT NULL DEFAULT '',
    target_note TEXT NOT NULL DEFAULT '',
    trigger_time INTEGER NOT NULL DEFAULT 0,
    trigger_value TEXT NOT NULL DEFAULT '',
    tags TEXT NOT NULL DEFAULT '',
    notify_cur_number INTEGER NOT NULL DEFAULT 0
)
"""

_GROUP_TABLE = """
CREATE TABLE IF NOT EXISTS user_group (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT '',
    note TEXT NOT NULL DEFAULT '',
    create_at INTEGER NOT NULL DEFAULT 0,
    create_by TEXT NOT NULL DEFAULT '',
    update_at INTEGER NOT NULL DEFAULT 0,
    update_by TEXT NOT NULL DEFAULT ''
)
"""


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "events.db"))
    database.execute(_EVENT_TABLE)
    database.execute(_GROUP_TABLE)
    yield database
    database.close()


def _event(**kwargs):
    values = dict(
        cluster="c1",
        group_id=1,
        hash="h1",
        rule_id=10,
        rule_name="cpu high",
        rule_prod="",
        severity=2,
        trigger_time=100,
        tags="ident=host1,,mod=api",
    )
    values.update(kwargs)
    return AlertCurEvent(**values)


def test_db2fe_splits_fields():
    event = AlertCurEvent(
        notify_channels="email sms", notify_groups="1 2", callbacks="cb1", tags="a=1,,b=2"
    )
    event.db2fe()
    assert event.notify_channels_json == ["email", "sms"]
    assert event.notify_groups_json == ["1", "2"]
    assert event.callbacks_json == ["cb1"]
    assert event.tags_json == ["a=1", "b=2"]


def test_db2mem_builds_tag_map_skipping_bad_pairs():
    event = AlertCurEvent(tags="a=1,,b=2,,bad,,c=d=e", is_recovered=True)
    event.db2mem()
    assert event.tags_map == {"a": "1", "b": "2"}
    assert event.is_recovered is False


def test_get_tag_value_and_field():
    event = _event()
    event.db2fe()
    assert event.get_tag_value("mod") == "api"
    assert event.get_tag_value("missing") == ""
    assert event.get_field("group_id") == str(event.group_id)
    assert event.get_field("rule_name") == event.rule_name
    assert event.get_field("unknown") == ""


def test_gen_card_title_uses_null_for_missing():
    event = _event()
    event.db2fe()
    title = event.gen_card_title(
        [AggrRule("field", "cluster"), AggrRule("tagkey", "ident"), AggrRule("tagkey", "zone")]
    )
    assert title.split("::") == [event.cluster, "host1", "Null"]


def test_to_his_copies_and_sets_recover_time():
    event = _event(is_recovered=True, last_eval_time=500)
    his = event.to_his()
    assert his.is_recovered == 1
    assert his.recover_time == 500
    assert his.hash == event.hash
    assert his.tags == event.tags

    firing = _event(last_eval_time=500).to_his()
    assert firing.is_recovered == 0
    assert firing.recover_time == 0


def test_add_and_get_round_trip(db):
    event = _event(notify_channels="email")
    event.add(db)
    loaded = alert_cur_event_get_by_id(db, event.id)
    assert loaded is not None
    assert loaded.rule_name == event.rule_name
    assert loaded.notify_channels_json == ["email"]
    assert loaded.notify_groups_obj == []
    assert alert_cur_event_get(db, "id = ?", event.id + 1000) is None


def test_total_and_gets_filters(db):
    _event(hash="a", severity=1, cluster="c1", rule_name="disk full").add(db)
    _event(hash="b", severity=2, cluster="c2", rule_name="cpu high").add(db)
    _event(hash="c", severity=2, cluster="c1", trigger_time=9999).add(db)

    assert alert_cur_event_total(db, "", 0, 0, 1000, -1, [], "") == 2
    assert alert_cur_event_total(db, "", 0, 0, 1000, 2, [], "") == 1
    assert alert_cur_event_total(db, "", 0, 0, 1000, -1, ["c1"], "") == 1
    assert alert_cur_event_total(db, "", 0, 0, 1000, -1, [], "disk") == 1

    events = alert_cur_event_gets(db, "", 0, 0, 10000, -1, [], "", 10, 0)
    ids = [event.id for event in events]
    assert ids == sorted(ids, reverse=True)
    assert all(event.tags_json for event in events)
    assert len(alert_cur_event_gets(db, "", 0, 0, 10000, -1, [], "", 1, 1)) == 1


def test_delete_and_exists(db):
    first = _event(hash="x")
    first.add(db)
    second = _event(hash="y")
    second.add(db)
    assert alert_cur_event_exists(db, "hash = ?", "x")
    alert_cur_event_del_by_hash(db, "x")
    assert not alert_cur_event_exists(db, "hash = ?", "x")
    alert_cur_event_del(db, [])
    assert alert_cur_event_exists(db, "id = ?", second.id)
    alert_cur_event_del(db, [second.id])
    assert alert_cur_event_get_all(db) == []


def test_alert_numbers_and_lookups(db):
    _event(hash="a", group_id=1, rule_id=7).add(db)
    _event(hash="b", group_id=1, rule_id=7).add(db)
    _event(hash="c", group_id=2, rule_id=8, cluster="c2").add(db)

    assert alert_numbers(db, []) == {}
    assert alert_numbers(db, [1, 2, 3]) == {1: 2, 2: 1}
    assert {e.hash for e in alert_cur_event_get_by_rule(db, 7)} == {"a", "b"}
    assert [e.hash for e in alert_cur_event_get_all(db, "c2")] == ["c"]
    assert alert_cur_event_get_map(db) == {7: {"a", "b"}, 8: {"c"}}
    assert alert_cur_event_get_map(db, "c2") == {8: {"c"}}

    all_ids = [e.id for e in alert_cur_event_get_all(db)]
    by_ids = alert_cur_event_get_by_ids(db, all_ids)
    assert [e.id for e in by_ids] == sorted(all_ids, reverse=True)
    assert alert_cur_event_get_by_ids(db, []) == []


def test_fill_notify_groups_skips_bad_and_missing(db):
    group = UserGroup(name="ops")
    group.add(db)
    event = AlertCurEvent(notify_groups_json=[str(group.id), "abc", str(group.id + 100)])
    cache = {}
    event.fill_notify_groups(db, cache)
    assert [g.name for g in event.notify_groups_obj] == ["ops"]
    assert list(cache) == [group.id]

    empty = AlertCurEvent()
    empty.fill_notify_groups(db, {})
    assert empty.notify_groups_obj == []