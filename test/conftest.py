import sys
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

ADMIN_PASSWORD = "libas123"
STAFF_PASSWORD = "456"


def open_tab(db_path, bus=None, **kwargs):
    from libas.application.container import build_container

    return build_container(db_path, bus=bus, **kwargs)


def login_as(container, role: str):
    password = ADMIN_PASSWORD if role == "admin" else STAFF_PASSWORD
    return container.auth.login(password, username=role)


def frozen_clock(at: datetime | None = None):
    """Clock whose wall time never moves; readings still strictly increase."""
    from libas.clock import MonotonicClock

    fixed = at or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    return MonotonicClock(source=lambda: fixed)


def shirt_entry(**overrides) -> dict:
    entry = {
        "name": "Shirt",
        "quantity": 10,
        "group": "Apparel",
        "purchasePrice": 100,
        "date": "2024-01-01",
    }
    entry.update(overrides)
    return entry
