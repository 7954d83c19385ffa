import copy

import pytest
from fastapi.testclient import TestClient

from khoj.deps import store_dep
from khoj.main import create_app


class InMemoryStore:
    """Same surface as khoj.db.dynamo.DynamoStore, backed by dicts."""

    def __init__(self):
        self.alerts = {}
        self.reports = {}
        self.areas = {}
        self.notifications = []
        self.users = {}
        self.area_writes = 0

    # counts
    def count_area_alerts(self, district, upazila):
        rows = [a for a in self.alerts.values() if a["district"] == district and a["upazila"] == upazila]
        active = sum(1 for a in rows if a["status"] == "active")
        resolved = sum(1 for a in rows if a["status"] == "resolved")
        return len(rows), active, resolved

    def count_area_reports(self, district, upazila):
        return sum(1 for r in self.reports.values() if r["district"] == district and r["upazila"] == upazila)

    def count_alerts(self, status=None):
        return sum(1 for a in self.alerts.values() if status is None or a["status"] == status)

    def count_reports(self):
        return len(self.reports)

    # area statistics
    def get_area_statistics(self, district, upazila):
        item = self.areas.get((district, upazila))
        return copy.deepcopy(item) if item else None

    def put_area_statistics(self, item):
        self.area_writes += 1
        self.areas[(item["district"], item["upazila"])] = copy.deepcopy(item)

    def list_area_statistics(self, district=None, upazila=None):
        items = [copy.deepcopy(it) for (d, u), it in self.areas.items()
                 if (district is None or d == district) and (upazila is None or u == upazila)]
        items.sort(key=lambda it: it.get("dangerScore", 0), reverse=True)
        return items

    # alerts
    def put_alert(self, item):
        self.alerts[item["alert_id"]] = copy.deepcopy(item)

    def get_alert(self, alert_id):
        item = self.alerts.get(alert_id)
        return copy.deepcopy(item) if item else None

    def delete_alert(self, alert_id):
        self.alerts.pop(alert_id, None)

    def list_alerts(self, status=None):
        return [copy.deepcopy(a) for a in self.alerts.values() if status is None or a["status"] == status]

    # reports
    def put_report(self, item):
        self.reports[item["report_id"]] = copy.deepcopy(item)

    def get_report(self, report_id):
        item = self.reports.get(report_id)
        return copy.deepcopy(item) if item else None

    def delete_report(self, report_id):
        self.reports.pop(report_id, None)

    def list_reports(self):
        return [copy.deepcopy(r) for r in self.reports.values()]

    # users
    def list_users(self, limit=200):
        return [dict(u) for u in self.users.values() if u["user_type"] == "citizen"][:limit]

    def list_police(self, district, limit=200):
        return [dict(u) for u in self.users.values()
                if u["user_type"] == "police" and u.get("district") == district][:limit]

    # notifications
    def put_notifications(self, items):
        self.notifications.extend(copy.deepcopy(items))
        return len(items)

    def list_notifications(self, user_id, limit=20):
        mine = [n for n in self.notifications if n["recipient_id"] == user_id]
        return sorted(mine, key=lambda n: n["created_at"], reverse=True)[:limit]

    def mark_notification_read(self, user_id, notification_id):
        for n in self.notifications:
            if n["recipient_id"] == user_id and n["notification_id"] == notification_id:
                n["is_read"] = True
                return True
        return False


def add_alert(store, alert_id, district="Dhaka", upazila="Savar", status="active", owner="u1"):
    store.put_alert({
        "alert_id": alert_id,
        "district": district,
        "upazila": upazila,
        "status": status,
        "title": f"Alert {alert_id}",
        "location": "Bus stand",
        "created_by": {"user_id": owner, "user_type": "citizen"},
    })


def add_user(store, user_id, user_type="citizen", district=None):
    store.users[user_id] = {"user_id": user_id, "user_type": user_type, "district": district}


def add_report(store, report_id, district="Dhaka", upazila="Savar", owner=None):
    item = {"report_id": report_id, "district": district, "upazila": upazila, "title": f"Report {report_id}"}
    if owner:
        item["created_by"] = {"user_id": owner, "user_type": "citizen"}
    store.put_report(item)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def app(store):
    app = create_app()
    app.dependency_overrides[store_dep] = lambda: store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def lenient_client(app):
    # unhandled errors come back as 500 responses instead of being re-raised
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
