"""Business logic: access scoping, search, dashboard aggregation, data entry"""
from typing import Optional, List, Dict, Tuple, Any, Iterable, TypeVar
import logging

from config import app_config
from efficiency import EfficiencyCalculator, machine_performance, dashboard_stats
from models import ProductionRecord, MachineTarget, EntryRow, UserContext
from store_client import SheetStoreClient, StoreError
from utils import parse_record_date, format_date_ddmmyy, today_str

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ValidationError(Exception):
    """Local validation failure, reported to the user as-is"""


def is_unrestricted(context: UserContext) -> bool:
    return context.is_admin or context.firm_name == app_config.all_firms


def apply_firm_scope(records: Iterable[T], context: UserContext) -> List[T]:
    """Keep only the requester's firm unless they are admin or scoped to 'All'"""
    records = list(records)
    if is_unrestricted(context) or not context.firm_name:
        return records

    user_firm = context.firm_name.strip()
    scoped = [r for r in records if (r.firm_name or '').strip() == user_firm]
    logger.info(f"Filtered {len(scoped)} records from {len(records)} for firm: {user_firm}")
    return scoped


def scope_machines(machines: Iterable[MachineTarget], context: UserContext) -> List[MachineTarget]:
    """Data entry shows the user's own firm's machines unless scoped to 'All'"""
    machines = list(machines)
    if not context.firm_name or context.firm_name == app_config.all_firms:
        return machines
    user_firm = context.firm_name.strip()
    return [m for m in machines if m.firm_name.strip() == user_firm]


def matches_date(record: ProductionRecord, wanted: str) -> bool:
    if not record.date_time:
        return False
    record_day = parse_record_date(record.date_time)
    wanted_day = parse_record_date(wanted)
    if record_day is None or wanted_day is None:
        return wanted in record.date_time
    return record_day == wanted_day


def apply_filters(
    records: List[ProductionRecord],
    machine: Optional[str] = None,
    specifications: Optional[str] = None,
    date: Optional[str] = None
) -> List[ProductionRecord]:
    """Apply search criteria; every supplied criterion must match"""
    filtered = records

    if machine and machine.strip():
        needle = machine.strip().lower()
        filtered = [r for r in filtered if needle in r.machine_name.lower()]
    if specifications and specifications.strip():
        needle = specifications.strip().lower()
        filtered = [r for r in filtered if needle in r.specifications.lower()]
    if date and date.strip():
        wanted = date.strip()
        filtered = [r for r in filtered if matches_date(r, wanted)]

    return filtered


def fetch_records(store: SheetStoreClient, context: UserContext) -> List[ProductionRecord]:
    """Records visible to the requester"""
    envelope = store.list_records().raise_for_failure('Failed to load records')
    records = [ProductionRecord.from_dict(row) for row in envelope.data]
    logger.info(f"Total records fetched: {len(records)}")
    return apply_firm_scope(records, context)


def record_to_row(record: ProductionRecord) -> Dict[str, Any]:
    """Record plus derived efficiency fields, for tables and JSON"""
    efficiency = EfficiencyCalculator.calculate_efficiency(record)
    row = record.to_dict()
    row['displayDate'] = format_date_ddmmyy(record.date_time)
    row['efficiency'] = round(efficiency, 2)
    row['status'] = EfficiencyCalculator.performance_status(efficiency)
    row['cellStatus'] = EfficiencyCalculator.cell_statuses(record)
    return row


def get_dashboard_summary(
    store: SheetStoreClient,
    context: UserContext,
    today: Optional[str] = None
) -> Dict[str, Any]:
    """Band counts and per-machine performance for the requester's scope"""
    records = fetch_records(store, context)
    stats = dashboard_stats(records, today or today_str())
    machines = machine_performance(records)
    return {
        "stats": stats.to_dict(),
        "machines": [m.to_dict() for m in machines],
        "scope": app_config.all_firms if is_unrestricted(context) else context.firm_name,
    }


def fetch_entry_rows(store: SheetStoreClient, context: UserContext) -> List[EntryRow]:
    """Machines for the requester's firm, seeded with zeroed actuals"""
    envelope = store.list_machines().raise_for_failure('Failed to fetch main data or no data returned')
    machines = [MachineTarget.from_dict(row, index) for index, row in enumerate(envelope.data)]
    machines = scope_machines(machines, context)
    if not machines:
        raise ValidationError(f"No machines found for firm: {context.firm_name}")
    logger.info(f"Loaded {len(machines)} machines for {context.firm_name}")
    return [EntryRow(target=m) for m in machines]


def distinct_values(rows: List[Dict[str, Any]], key: str) -> List[str]:
    seen = []
    for row in rows:
        value = row.get(key)
        if isinstance(value, str) and value.strip() and value not in seen:
            seen.append(value)
    return seen


def fetch_master_options(store: SheetStoreClient) -> Tuple[List[str], List[str]]:
    """Specification and material choices, falling back to the default lists"""
    try:
        envelope = store.list_master().raise_for_failure('Failed to fetch master data')
    except StoreError as e:
        logger.warning(f"Master data fetch failed, using fallback: {e}")
        return list(app_config.default_specifications), list(app_config.default_materials)

    return distinct_values(envelope.data, 'specifications'), distinct_values(envelope.data, 'material')


def submit_entry_row(store: SheetStoreClient, row: EntryRow, date_time: str) -> EntryRow:
    """
    Append one entry row to the records sheet.

    Returns the row with its actuals reset. On failure the exception
    propagates and the caller keeps the row as typed.
    """
    if not row.has_actuals():
        raise ValidationError("Please fill in at least one actual value before submitting")

    store.append_records([row.to_payload(date_time)]).raise_for_failure('Failed to submit records')
    logger.info(f"Record for {row.target.machine_name} ({row.target.firm_name}) submitted")
    return row.reset_actuals()
