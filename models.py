"""Data models for Machine Efficiency Dashboard"""
from dataclasses import dataclass, field, replace
from typing import List, Dict, Any


def to_number(value: Any) -> float:
    """Lenient numeric coercion; blanks and junk become 0"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def to_int(value: Any) -> int:
    return int(to_number(value))


def to_text(value: Any) -> str:
    return '' if value is None else str(value)


@dataclass(frozen=True)
class ProductionRecord:
    """A single machine-day production entry. Never mutated once stored."""
    s_no: int
    machine_name: str
    firm_name: str
    date_time: str
    timestamp: str
    optimum_working_time: float
    optimum_output: float
    optimum_total_quantity: float
    actual_working_time: float
    actual_output: float
    actual_total_output: float
    material: str = ''
    manpower: int = 0
    specifications: str = ''
    remarks: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductionRecord':
        return cls(
            s_no=to_int(data.get('sNo')),
            machine_name=to_text(data.get('machineName')),
            firm_name=to_text(data.get('firmName')),
            date_time=to_text(data.get('dateTime')),
            timestamp=to_text(data.get('timestamp')),
            optimum_working_time=to_number(data.get('optimumWorkingTime')),
            optimum_output=to_number(data.get('optimumOutput')),
            optimum_total_quantity=to_number(data.get('optimumTotalQuantity')),
            actual_working_time=to_number(data.get('actualWorkingTime')),
            actual_output=to_number(data.get('actualOutput')),
            actual_total_output=to_number(data.get('actualTotalOutput')),
            material=to_text(data.get('material')),
            manpower=to_int(data.get('manpower')),
            specifications=to_text(data.get('specifications')),
            remarks=to_text(data.get('remarks')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sNo': self.s_no,
            'machineName': self.machine_name,
            'firmName': self.firm_name,
            'dateTime': self.date_time,
            'timestamp': self.timestamp,
            'optimumWorkingTime': self.optimum_working_time,
            'optimumOutput': self.optimum_output,
            'optimumTotalQuantity': self.optimum_total_quantity,
            'actualWorkingTime': self.actual_working_time,
            'actualOutput': self.actual_output,
            'actualTotalOutput': self.actual_total_output,
            'material': self.material,
            'manpower': self.manpower,
            'specifications': self.specifications,
            'remarks': self.remarks,
        }


@dataclass(frozen=True)
class MachineTarget:
    """Firm-scoped machine with its optimum metrics (Main sheet row)"""
    s_no: int
    machine_name: str
    firm_name: str
    optimum_working_time: float
    optimum_output: float
    optimum_total_quantity: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> 'MachineTarget':
        return cls(
            s_no=to_int(data.get('sNo')) or index + 1,
            machine_name=to_text(data.get('machineName')) or 'Unknown Machine',
            firm_name=to_text(data.get('firmName')) or 'No Firm',
            optimum_working_time=to_number(data.get('optimumWorkingTime')),
            optimum_output=to_number(data.get('optimumOutput')),
            optimum_total_quantity=to_number(data.get('optimumTotalQuantity')),
        )


@dataclass
class EntryRow:
    """Data-entry row: a machine target plus the actuals being typed in"""
    target: MachineTarget
    actual_working_time: float = 0.0
    actual_output: float = 0.0
    actual_total_output: float = 0.0
    material: str = ''
    manpower: int = 0
    specifications: str = ''
    remarks: str = ''

    def has_actuals(self) -> bool:
        return bool(self.actual_working_time or self.actual_output or self.actual_total_output)

    def reset_actuals(self) -> 'EntryRow':
        return EntryRow(target=self.target)

    def to_payload(self, date_time: str) -> Dict[str, Any]:
        """Row object as the store's saveRecords action expects it"""
        return {
            'dateTime': date_time,
            'sNo': self.target.s_no,
            'machineName': self.target.machine_name,
            'optimumWorkingTime': self.target.optimum_working_time,
            'optimumOutput': self.target.optimum_output,
            'optimumTotalQuantity': self.target.optimum_total_quantity,
            'actualWorkingTime': self.actual_working_time,
            'actualOutput': self.actual_output,
            'actualTotalOutput': self.actual_total_output,
            'material': self.material,
            'manpower': self.manpower,
            'specifications': self.specifications,
            'remarks': self.remarks,
            'firmName': self.target.firm_name,
        }


@dataclass(frozen=True)
class User:
    """Entry of the remote user list"""
    username: str
    password: str
    role: str
    firm_name: str
    access: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            username=to_text(data.get('username')).strip(),
            password=to_text(data.get('password')),
            role=to_text(data.get('role')).strip().lower(),
            firm_name=to_text(data.get('firmName')).strip(),
            access=to_text(data.get('access') or data.get('allowedPages')),
        )


@dataclass(frozen=True)
class UserContext:
    """Explicit session context: created at login, passed to every scoped operation"""
    username: str
    role: str
    firm_name: str
    allowed_pages: List[str] = field(default_factory=list)
    is_admin: bool = False

    def can_view(self, access_name: str) -> bool:
        return access_name in self.allowed_pages

    def to_dict(self) -> Dict[str, Any]:
        return {
            'username': self.username,
            'role': self.role,
            'firmName': self.firm_name,
            'allowedPages': list(self.allowed_pages),
            'isAdmin': self.is_admin,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserContext':
        return cls(
            username=to_text(data.get('username')),
            role=to_text(data.get('role')),
            firm_name=to_text(data.get('firmName')),
            allowed_pages=list(data.get('allowedPages') or []),
            is_admin=bool(data.get('isAdmin')),
        )


@dataclass
class MachinePerformance:
    machine_name: str
    firm_name: str
    total_records: int
    average_efficiency: int
    status: str
    last_update: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'machineName': self.machine_name,
            'firmName': self.firm_name,
            'totalRecords': self.total_records,
            'averageEfficiency': self.average_efficiency,
            'status': self.status,
            'lastUpdate': self.last_update,
        }


@dataclass
class DashboardStats:
    total: int = 0
    excellent: int = 0
    good: int = 0
    poor: int = 0
    today_records: int = 0
    average_efficiency: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'excellent': self.excellent,
            'good': self.good,
            'poor': self.poor,
            'todayRecords': self.today_records,
            'averageEfficiency': self.average_efficiency,
        }


def with_actuals(row: EntryRow, **values: Any) -> EntryRow:
    """Copy of an entry row with user-typed fields applied"""
    return replace(row, **values)
