from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config import get_dashboard_metrics_spec, get_dashboard_status_spec

# Badge classes for the status overview
STATUS_BADGES = {
    "Operational": "badge-ok",
    "Warning": "badge-warn",
    "Critical": "badge-critical",
    "Maintenance": "badge-maint",
}


@dataclass(frozen=True)
class DashboardMetric:
    title: str
    value: str
    trend_value: Optional[float] = None
    trend_positive: bool = True

    @property
    def trend_label(self) -> Optional[str]:
        if self.trend_value is None:
            return None
        arrow = "↑" if self.trend_positive else "↓"
        v = abs(self.trend_value)
        return f"{arrow} {int(v) if float(v).is_integer() else v}%"


@dataclass(frozen=True)
class StatusItem:
    id: str
    name: str
    status: str
    last_update: str

    @property
    def badge_class(self) -> str:
        return STATUS_BADGES.get(self.status, "badge-default")


@dataclass(frozen=True)
class TableTile:
    collection: str
    label: str
    count: int
    active: bool


# Selector tiles, in display order
TABLE_TILES = [
    ("suppliers", "Supplier Parts"),
    ("inventory", "Inventory Items"),
    ("wheelmotor", "Wheel Motors"),
]


def dashboard_metrics(cfg: dict) -> List[DashboardMetric]:
    out = []
    for m in get_dashboard_metrics_spec(cfg):
        trend = m.get("trend") if isinstance(m.get("trend"), dict) else {}
        tv = trend.get("value")
        try:
            tv = float(tv) if tv is not None else None
        except (TypeError, ValueError):
            tv = None
        out.append(DashboardMetric(
            title=str(m.get("title") or ""),
            value=str(m.get("value") if m.get("value") is not None else ""),
            trend_value=tv,
            trend_positive=bool(trend.get("positive", True)),
        ))
    return out


def status_items(cfg: dict) -> List[StatusItem]:
    return [
        StatusItem(
            id=str(s.get("id") or i + 1),
            name=str(s.get("name") or ""),
            status=str(s.get("status") or ""),
            last_update=str(s.get("last_update") or ""),
        )
        for i, s in enumerate(get_dashboard_status_spec(cfg))
    ]


def table_selector(counts: Dict[str, int], current: str) -> List[TableTile]:
    return [
        TableTile(collection=c, label=label, count=int(counts.get(c, 0) or 0), active=(c == current))
        for c, label in TABLE_TILES
    ]
