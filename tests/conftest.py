import pytest
from fastapi.testclient import TestClient

from main import app
from store_client import SheetStoreClient, StoreEnvelope, StoreTransportError, get_store_client


def make_record(machine, firm, date_time, timestamp, optimum=(10, 100, 1000), actual=(10, 100, 1000), **extra):
    row = {
        "sNo": extra.pop("sNo", 1),
        "machineName": machine,
        "firmName": firm,
        "dateTime": date_time,
        "timestamp": timestamp,
        "optimumWorkingTime": optimum[0],
        "optimumOutput": optimum[1],
        "optimumTotalQuantity": optimum[2],
        "actualWorkingTime": actual[0],
        "actualOutput": actual[1],
        "actualTotalOutput": actual[2],
        "material": "",
        "manpower": 0,
        "specifications": "",
        "remarks": "",
    }
    row.update(extra)
    return row


class FakeStore(SheetStoreClient):
    """In-memory stand-in for the Apps Script endpoint"""

    def __init__(self):
        super().__init__("http://store.test/exec")
        self.sheets = {
            "getMainData": [
                {"sNo": 1, "machineName": "Mill 1", "firmName": "Acme",
                 "optimumWorkingTime": 8, "optimumOutput": 50, "optimumTotalQuantity": 400},
                {"sNo": 2, "machineName": "Lathe 2", "firmName": "Acme",
                 "optimumWorkingTime": 8, "optimumOutput": 20, "optimumTotalQuantity": 160},
                {"sNo": 3, "machineName": "Press 9", "firmName": "Beta",
                 "optimumWorkingTime": 10, "optimumOutput": 30, "optimumTotalQuantity": 300},
            ],
            "getMasterData": [
                {"specifications": "Labour issue", "material": "Steel"},
                {"specifications": "Electricity issue", "material": "Steel"},
                {"specifications": "", "material": "Copper"},
            ],
            "getRecords": [
                make_record("Mill 1", "Acme", "2024-05-01", "2024-05-01T10:00:00Z",
                            actual=(8, 80, 800), specifications="Labour issue"),
                make_record("Mill 1", "Acme", "2024-05-02", "2024-05-02T10:00:00Z",
                            actual=(10, 100, 1000)),
                make_record("Press 9", "Beta", "2024-05-01", "2024-05-01T11:00:00Z",
                            actual=(5, 50, 500), specifications="Machine work/maintenance"),
            ],
            "getUsers": [
                {"username": "admin", "password": "secret", "role": "admin",
                 "firmName": "All", "access": "Dashboard, Data Entry, Records"},
                {"username": "acme", "password": "acme123", "role": "user",
                 "firmName": "Acme", "access": "dashboard,records"},
                {"username": "clerk", "password": "clerk", "role": "user",
                 "firmName": "Acme", "access": "data entry"},
            ],
        }
        self.posted = []
        self.fail = False

    def get(self, action):
        if self.fail:
            raise StoreTransportError("Could not reach Google Sheets: connection refused")
        if action == "getUsers":
            return StoreEnvelope.from_payload({"users": list(self.sheets["getUsers"])})
        if action not in self.sheets:
            return StoreEnvelope.from_payload({"success": False, "error": f"Unknown action: {action}"})
        return StoreEnvelope.from_payload({"success": True, "data": list(self.sheets[action])})

    def post(self, action, data):
        if self.fail:
            raise StoreTransportError("Could not reach Google Sheets: connection refused")
        self.posted.append((action, data))
        for row in data:
            self.sheets["getRecords"].append(dict(row, timestamp="2024-05-03T09:00:00Z"))
        return StoreEnvelope.from_payload({"success": True, "message": "Saved"})


@pytest.fixture()
def store():
    return FakeStore()


@pytest.fixture()
def client(store):
    app.dependency_overrides[get_store_client] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def login(client):
    def _login(username, password):
        return client.post("/login", data={"username": username, "password": password},
                           follow_redirects=False)
    return _login


@pytest.fixture()
def anyio_backend():
    return "asyncio"
