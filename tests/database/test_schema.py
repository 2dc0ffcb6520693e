from __future__ import annotations

from datetime import time, timedelta
from pathlib import Path

import pytest

from src.badge_system.badge_system.database.bootstrap import schema_statements
from src.badge_system.badge_system.database.connection import DBConfig
from src.badge_system.badge_system.database.mysql_base import in_clause, normalize_mysql_time

SCHEMA = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def test_schema_file_splits_into_table_statements():
    statements = list(schema_statements(SCHEMA.read_text(encoding="utf-8")))

    assert statements
    assert all(s.upper().startswith("CREATE TABLE") for s in statements)
    assert any("appbadge_badgeages" in s for s in statements)
    assert any("uq_oublis_one_pending" in s for s in statements)


def test_database_and_use_lines_are_skipped():
    sql = "-- header\nCREATE DATABASE x;\nUSE x;\nCREATE TABLE t (id INT);\n"

    assert list(schema_statements(sql)) == ["CREATE TABLE t (id INT)"]


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        (time(8, 30), time(8, 30)),
        (timedelta(hours=8, minutes=30), time(8, 30)),
        ("17:00:00", time(17, 0)),
    ],
)
def test_normalize_mysql_time(raw, expected):
    assert normalize_mysql_time(raw) == expected


def test_unparseable_time_is_rejected():
    with pytest.raises(ValueError):
        normalize_mysql_time("midi")


def test_config_from_settings_defaults():
    config = DBConfig.from_settings({"user": "badge", "database": "badge_db_test"})

    assert config.describe() == "badge@localhost:3306/badge_db_test"
    assert in_clause([1, 2, 3]) == "%s, %s, %s"
