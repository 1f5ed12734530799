# n9e

Data models and helper functions for an alerting and monitoring management
service: users, user groups, roles, business groups, monitored targets,
alert rules, mutes, subscriptions, current and historical alert events,
aggregation views, metric views and recording rules. Everything is stored in
SQLite through the standard library's `sqlite3` module; the package has no
runtime dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Storage

`n9e.db.Database(path=":memory:")` opens a SQLite database and creates the
tables it needs. It is a context manager that closes the connection on exit,
and offers `execute`, `query`, `count`, `exists`, `insert`, `update`,
`delete`, `statistics` and a `transaction()` context manager (nested blocks
join the outer one; an exception rolls the whole block back). A sequence
passed for a `?` placeholder is expanded, so `"id in ?"` takes a list.

Validation failures, conflicts and database errors raise
`n9e.db.ModelError` with a readable message, for example
`"Username already exists"` or `"tags is blank"`.

The `configs` key/value table is reached with `configs_get`, `configs_set`
and `configs_gets`. `init_salt` stores a random password salt if none is
stored yet, and `crypto_pass` hashes a password with it.

## Users and groups

```python
from n9e.db import Database, crypto_pass, init_salt
from n9e.user import User, pass_login
from n9e.user_group import UserGroup

with Database(":memory:") as db:
    init_salt(db)

    user = User(username="alice", nickname="Alice", email="alice@example.com")
    user.verify()
    user.add(db)

    password = "password"
    user.update_password(db, crypto_pass(db, password), "alice")
    logged_in = pass_login(db, "alice", password)

    group = UserGroup(name="ops", create_by="alice")
    group.add(db)
    group.add_members(db, [user.id])
```

- `n9e.user`: `User` with `verify`, `add`, `update`, `change_password`,
  `check_perm`, `can_modify_user_group`, `can_do_busi_group`,
  `nopri_idents`, `busi_groups`, `user_groups`; lookups such as
  `user_get_by_username`, `user_gets`, `user_total`; `init_root` hashes a
  plain-text root password once.
- `n9e.user_group`: `UserGroup`, `UserGroupMember` and membership helpers.
- `n9e.roles`: `Role`, `role_gets`, `role_has_operation`,
  `operations_of_role` (the `Admin` role is granted every operation).
- `n9e.busi_group` and `n9e.busi_group_member`: business groups, the teams
  that may act on them and their permission flags. `BusiGroup.delete`
  refuses while mutes, subscriptions, targets, dashboards, task templates or
  alert rules still belong to the group.
- `n9e.target`: monitored hosts, their tags, notes and group assignment.

## Alerting

```python
from n9e.alert_rule import AlertRule
from n9e.alert_cur_event import AlertCurEvent, AggrRule

rule = AlertRule(group_id=1, cluster="default", name="cpu high",
                 prom_ql="cpu_usage_idle < 10")
rule.add(db, notify_channels=["email", "dingtalk"])

event = AlertCurEvent(cluster="default", rule_name="cpu high",
                      tags="ident=host1,,service=api")
event.db2fe()
event.gen_card_title([AggrRule("field", "cluster"), AggrRule("tagkey", "ident")])
# 'default::host1'
```

- `n9e.alert_rule`: `AlertRule`; `verify` keeps only the notify channels
  found in the list it is given.
- `n9e.alert_mute`: `AlertMute` and `TagFilter`; `parse_tag_filters`
  decodes a JSON array of `==`, `=~` and `in` conditions.
  `alert_mute_gets_by_cluster` first removes mutes that have expired.
- `n9e.alert_subscribe`: `AlertSubscribe`.
- `n9e.alert_cur_event`: `AlertCurEvent` (active alerts) with `to_his`,
  `db2mem`, filtered listing and per-group counts (`alert_numbers`).
- `n9e.alert_his_event`: `AlertHisEvent` (event history).
- `n9e.alert_aggr_view` and `n9e.metric_view`: saved views, listed public
  ones first.
- `n9e.recording_rule`: `RecordingRule`, with metric and label name checks.

## Template helpers

`n9e.tplx` holds value formatters for alert notes: `humanize`,
`humanize1024`, `humanize_duration`, `humanize_percentage`,
`humanize_percentage_h`, `timeformat`, `timestamp`, `re_replace_all`,
`args`, `unescaped` and `urlconvert`, collected by name in `TEMPLATE_FUNCS`.

```python
from n9e.tplx import humanize, humanize_duration

humanize("1234567")        # '1.23M'
humanize_duration("3661")  # '1h 1m 1s'
```

## Other helpers

- `n9e.textutil`: `dangerous`, `is_phone`, `is_mail` checks for user input.
- `n9e.jsontypes`: `scan_json`, `json_value`, `marshal_obj`, `marshal_arr`
  for raw JSON column values.
- `n9e.tlsx`: `ClientConfig` and `ServerConfig` build an `ssl.SSLContext`
  from certificate paths, protocol versions and cipher suite names;
  `parse_ciphers` and `parse_tls_version` check names against the supported
  lists.

## What this package does not do

It is a library of models only. It has no command-line program and no HTTP
server or API, does not evaluate rules against a metrics store, does not
render alert note templates or send notifications, and offers no LDAP or
single sign-on login. Storage is SQLite only.