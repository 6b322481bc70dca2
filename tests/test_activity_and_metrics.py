from __future__ import annotations
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from supplydash.core.v1.activity import recent_activity
from supplydash.core.v1.metrics import dashboard_metrics, status_items, table_selector
from supplydash.core.v1.store import MemoryStore


def _activity_store(n: int = 7) -> MemoryStore:
    rows = [
        {"id": str(i), "user_email": "ops@example.com", "action": f"action {i}", "detail": "d", "created_at": f"2024-04-{10 + i:02d}T00:00:00Z"}
        for i in range(n)
    ]
    rows.append({"id": "99", "user_email": "other@example.com", "action": "not mine", "created_at": "2024-05-01T00:00:00Z"})
    return MemoryStore({"activity": rows})


def test_recent_activity_is_newest_first_limited_and_per_user():
    entries = recent_activity(_activity_store(), "ops@example.com", limit=5)
    assert [e.action for e in entries] == ["action 6", "action 5", "action 4", "action 3", "action 2"]
    assert all(e.action != "not mine" for e in entries)


def test_recent_activity_without_session_email_queries_nothing():
    class _NoQuery:
        def fetch_all(self, *a, **k):
            raise AssertionError("should not query")

    assert recent_activity(_NoQuery(), None) == []
    assert recent_activity(_NoQuery(), "  ") == []


def test_dashboard_metrics_defaults_and_trend_labels():
    metrics = dashboard_metrics({})
    assert [m.title for m in metrics] == ["Total Shipments", "Active Orders", "Equipment Utilization"]
    assert metrics[0].value == "1,234"
    assert metrics[0].trend_label == "↑ 12%"
    assert metrics[2].trend_label == "↓ 3%"


def test_dashboard_metrics_from_config():
    cfg = {"dashboard": {"metrics": [{"title": "Open POs", "value": 4}]}}
    metrics = dashboard_metrics(cfg)
    assert len(metrics) == 1
    assert metrics[0].value == "4"
    assert metrics[0].trend_label is None


def test_status_items_badges():
    items = status_items({"dashboard": {"status": [
        {"name": "Line", "status": "Critical", "last_update": "now"},
        {"name": "Yard", "status": "Unknown"},
    ]}})
    assert [i.id for i in items] == ["1", "2"]
    assert items[0].badge_class == "badge-critical"
    assert items[1].badge_class == "badge-default"


def test_table_selector_marks_current_collection():
    tiles = table_selector({"inventory": 3, "wheelmotor": 2}, "inventory")
    assert [(t.collection, t.count, t.active) for t in tiles] == [
        ("suppliers", 0, False),
        ("inventory", 3, True),
        ("wheelmotor", 2, False),
    ]
