from datetime import datetime, timezone

import pytest

import auth
from auth import build_context, parse_allowed_pages
from config import AppConfig
from models import EntryRow, MachineTarget, ProductionRecord, User
from services import (
    ValidationError, apply_filters, apply_firm_scope, fetch_entry_rows,
    fetch_master_options, fetch_records, submit_entry_row,
)
from store_client import StoreTransportError
from utils import today_str
from conftest import make_record


def context(role="user", firm="Acme", access="dashboard,data entry,records"):
    return build_context(User(username="u", password="p", role=role, firm_name=firm, access=access))


@pytest.fixture()
def records():
    rows = [
        make_record("Mill 1", "Acme", "2024-05-01", "t1", specifications="Labour issue"),
        make_record("Milling Press", " Acme ", "2024-05-02T14:30:00", "t2", specifications="Electricity issue"),
        make_record("Lathe", "Beta", "2024-05-01", "t3", specifications="Labour issue"),
        make_record("Drill", "acme", "01/05/2024", "t4"),
        make_record("Saw", "Acme", "", "t5"),
        make_record("Grinder", "Acme", "week 18", "t6"),
    ]
    return [ProductionRecord.from_dict(r) for r in rows]


def test_firm_scope_keeps_only_own_firm(records):
    scoped = apply_firm_scope(records, context(firm="Acme"))
    assert {r.machine_name for r in scoped} == {"Mill 1", "Milling Press", "Saw", "Grinder"}
    assert len(scoped) < len(records)


def test_firm_scope_is_case_sensitive(records):
    scoped = apply_firm_scope(records, context(firm="acme"))
    assert [r.machine_name for r in scoped] == ["Drill"]


@pytest.mark.parametrize("ctx", [context(role="admin", firm="Acme"), context(firm="All")])
def test_admin_or_all_scope_sees_everything(records, ctx):
    assert apply_firm_scope(records, ctx) == records


def test_parse_allowed_pages():
    assert parse_allowed_pages(" Dashboard , Data Entry,RECORDS ") == ["dashboard", "data entry", "records"]
    assert parse_allowed_pages("") == []
    assert parse_allowed_pages(None) == []


def test_build_context_flags_admin():
    assert context(role="admin").is_admin
    assert not context(role="user").is_admin
    assert context(access="records").can_view("records")
    assert not context(access="records").can_view("dashboard")


def test_admin_role_setting_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("ADMIN_ROLE", " Admin ")
    config = AppConfig()
    assert config.admin_role == "admin"

    monkeypatch.setattr(auth, "app_config", config)
    user = User.from_dict({"username": "boss", "password": "x", "role": "ADMIN", "firmName": "Acme"})
    assert build_context(user).is_admin


def test_empty_filters_return_input_unchanged(records):
    assert apply_filters(records) == records
    assert apply_filters(records, "", "  ", "") == records


def test_machine_search_is_case_insensitive_substring(records):
    result = apply_filters(records, machine="MILL")
    assert [r.machine_name for r in result] == ["Mill 1", "Milling Press"]


def test_filters_compose(records):
    assert apply_filters(records, machine="mill", specifications="") == apply_filters(records, machine="mill")
    combined = apply_filters(records, machine="mill", specifications="labour")
    assert [r.machine_name for r in combined] == ["Mill 1"]
    assert apply_filters(apply_filters(records, machine="mill"), specifications="labour") == combined


def test_filters_are_idempotent(records):
    once = apply_filters(records, machine="mill", date="2024-05-01")
    assert apply_filters(once, machine="mill", date="2024-05-01") == once


def test_date_filter_compares_calendar_day(records):
    result = apply_filters(records, date="2024-05-01")
    assert [r.machine_name for r in result] == ["Mill 1", "Lathe", "Drill"]
    assert [r.machine_name for r in apply_filters(records, date="2024-05-02")] == ["Milling Press"]


def test_date_filter_falls_back_to_substring(records):
    assert [r.machine_name for r in apply_filters(records, date="week")] == ["Grinder"]


def test_fetch_records_applies_scope(store):
    assert len(fetch_records(store, context(firm="Beta"))) == 1
    assert len(fetch_records(store, context(role="admin"))) == 3


def test_fetch_entry_rows_seeds_zeroed_actuals(store):
    rows = fetch_entry_rows(store, context(firm="Acme"))
    assert [r.target.machine_name for r in rows] == ["Mill 1", "Lathe 2"]
    assert all(not r.has_actuals() and r.manpower == 0 and r.remarks == "" for r in rows)


def test_fetch_entry_rows_with_no_machines(store):
    with pytest.raises(ValidationError, match="No machines found for firm: Gamma"):
        fetch_entry_rows(store, context(firm="Gamma"))


def test_master_options_are_distinct(store):
    specs, materials = fetch_master_options(store)
    assert specs == ["Labour issue", "Electricity issue"]
    assert materials == ["Steel", "Copper"]


def test_master_options_fall_back_on_store_failure(store):
    store.fail = True
    specs, materials = fetch_master_options(store)
    assert "Raw material issue" in specs
    assert materials == ["P14", "Sand", "Steel", "Aluminum", "Copper"]


def target():
    return MachineTarget(s_no=1, machine_name="Mill 1", firm_name="Acme",
                         optimum_working_time=8, optimum_output=50, optimum_total_quantity=400)


def test_submit_rejects_empty_row(store):
    row = EntryRow(target=target(), material="Steel", remarks="nothing yet")
    with pytest.raises(ValidationError):
        submit_entry_row(store, row, "2024-05-03")
    assert store.posted == []


def test_submit_resets_row_on_success(store):
    row = EntryRow(target=target(), actual_output=45, material="Steel", manpower=3,
                   specifications="Labour issue", remarks="ok")
    reset = submit_entry_row(store, row, "2024-05-03")

    assert reset == EntryRow(target=target())
    action, data = store.posted[0]
    assert action == "saveRecords"
    assert data[0]["actualOutput"] == 45
    assert data[0]["dateTime"] == "2024-05-03"
    assert data[0]["firmName"] == "Acme"


def test_submit_failure_leaves_row_untouched(store):
    store.fail = True
    row = EntryRow(target=target(), actual_working_time=7)
    with pytest.raises(StoreTransportError):
        submit_entry_row(store, row, "2024-05-03")
    assert row.actual_working_time == 7


def test_submitted_record_round_trips(store):
    row = EntryRow(target=target(), actual_working_time=7.5, actual_output=48, actual_total_output=390,
                   material="Steel", manpower=4, specifications="Labour issue", remarks="night shift")
    submit_entry_row(store, row, "2024-05-03")

    fetched = fetch_records(store, context(firm="Acme"))[-1]
    expected = ProductionRecord.from_dict(row.to_payload("2024-05-03"))
    assert fetched.to_dict() == dict(expected.to_dict(), timestamp=fetched.timestamp)


def test_today_is_the_utc_calendar_day():
    assert today_str() == datetime.now(timezone.utc).strftime("%Y-%m-%d")
