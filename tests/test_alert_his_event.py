import pytest

from n9e.alert_his_event import (
    AlertHisEvent,
    alert_his_event_get,
    alert_his_event_get_by_id,
    alert_his_event_gets,
    alert_his_event_total,
)
from n9e.db import Database
from n9e.user_group import UserGroup


@pytest.fixture
def db():
    with Database() as database:
        yield database


@pytest.fixture
def events(db):
    made = [
        AlertHisEvent(
            rule_prod="host", cluster="c1", group_id=1, severity=1, is_recovered=0,
            rule_name="cpu high", last_eval_time=100, tags="ident=h1,,env=prod",
        ),
        AlertHisEvent(
            rule_prod="host", cluster="c2", group_id=2, severity=2, is_recovered=1,
            rule_name="disk full", last_eval_time=200, tags="ident=h2",
        ),
        AlertHisEvent(
            rule_prod="metric", cluster="c1", group_id=1, severity=1,
            rule_name="cpu high", last_eval_time=150,
        ),
    ]
    for event in made:
        event.add(db)
    return made


def test_db2fe_splits_fields():
    event = AlertHisEvent(
        notify_channels="email sms", notify_groups="1 2", callbacks="a", tags="x=1,,y=2"
    )
    event.db2fe()
    assert event.notify_channels_json == ["email", "sms"]
    assert event.notify_groups_json == ["1", "2"]
    assert event.callbacks_json == ["a"]
    assert event.tags_json == ["x=1", "y=2"]


def test_db2fe_empty_tags_gives_one_empty_item():
    event = AlertHisEvent()
    event.db2fe()
    assert event.tags_json == [""]
    assert event.notify_groups_json == []


def test_total_filters(db, events):
    assert alert_his_event_total(db, "host", 0, 0, 1000, -1, -1, [], "") == 2
    assert alert_his_event_total(db, "host", 0, 150, 1000, -1, -1, [], "") == 1
    assert alert_his_event_total(db, "host", 1, 0, 1000, -1, -1, [], "") == 1
    assert alert_his_event_total(db, "host", 0, 0, 1000, 2, -1, [], "") == 1
    assert alert_his_event_total(db, "host", 0, 0, 1000, -1, 0, [], "") == 1
    assert alert_his_event_total(db, "host", 0, 0, 1000, -1, -1, ["c2"], "") == 1
    assert alert_his_event_total(db, "host", 0, 0, 1000, -1, -1, [], "disk") == 1
    assert alert_his_event_total(db, "host", 0, 0, 1000, -1, -1, [], "env=prod") == 1
    assert alert_his_event_total(db, "host", 0, 0, 1000, -1, -1, [], "cpu h2") == 0


def test_gets_order_limit_and_unpack(db, events):
    got = alert_his_event_gets(db, "host", 0, 0, 1000, -1, -1, [], "", 10, 0)
    assert [e.id for e in got] == [events[1].id, events[0].id]
    assert got[1].tags_json == ["ident=h1", "env=prod"]
    page = alert_his_event_gets(db, "host", 0, 0, 1000, -1, -1, [], "", 1, 1)
    assert [e.id for e in page] == [events[0].id]


def test_fill_notify_groups(db):
    group = UserGroup(name="ops")
    group.add(db)
    event = AlertHisEvent(notify_groups=f"x {group.id} 999")
    event.db2fe()
    cache = {}
    event.fill_notify_groups(db, cache)
    assert [g.id for g in event.notify_groups_obj] == [group.id]
    assert list(cache) == [group.id]


def test_fill_notify_groups_empty(db):
    event = AlertHisEvent()
    event.db2fe()
    event.fill_notify_groups(db, {})
    assert event.notify_groups_obj == []


def test_get_by_id(db, events):
    group = UserGroup(name="ops")
    group.add(db)
    event = AlertHisEvent(rule_prod="host", notify_groups=str(group.id), tags="a=1")
    event.add(db)
    got = alert_his_event_get_by_id(db, event.id)
    assert got.notify_groups_json == [str(group.id)]
    assert [g.name for g in got.notify_groups_obj] == ["ops"]
    assert got.tags_json == ["a=1"]
    assert alert_his_event_get(db, "id = ?", event.id + 100) is None