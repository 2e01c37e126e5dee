"""Efficiency computation and performance classification"""
from typing import Optional, List, Dict, Any
from datetime import datetime
import logging
import math

from models import ProductionRecord, MachinePerformance, DashboardStats
from utils import parse_timestamp, round_half_up

logger = logging.getLogger(__name__)

EXCELLENT = 'excellent'
GOOD = 'good'
POOR = 'poor'

ON_TARGET = 'on-target'
WARNING = 'warning'
BELOW_TARGET = 'below-target'


class EfficiencyCalculator:
    """Record-level efficiency and band classification"""

    @staticmethod
    def metric_pairs(record: ProductionRecord) -> List[tuple]:
        """(actual, optimum) for working time, output and total quantity"""
        return [
            (record.actual_working_time, record.optimum_working_time),
            (record.actual_output, record.optimum_output),
            (record.actual_total_output, record.optimum_total_quantity),
        ]

    @staticmethod
    def calculate_efficiency(record: ProductionRecord) -> float:
        """
        Mean of the per-metric actual/optimum percentages.

        A pair only counts when its optimum is positive and its ratio is
        positive. Absent metrics are excluded rather than treated as zero.

        Returns:
            Efficiency percentage, 0 when no pair qualifies
        """
        ratios = []
        for actual, optimum in EfficiencyCalculator.metric_pairs(record):
            if optimum > 0:
                ratios.append(actual / optimum * 100)

        valid = [r for r in ratios if r > 0]
        if not valid:
            return 0.0
        return sum(valid) / len(valid)

    @staticmethod
    def performance_status(efficiency: float) -> str:
        """Aggregate band, lower bounds inclusive"""
        if efficiency >= 95:
            return EXCELLENT
        if efficiency >= 80:
            return GOOD
        return POOR

    @staticmethod
    def cell_status(actual: Any, optimum: Any) -> Optional[str]:
        """
        Per-cell band used by the records table.

        Thresholds differ from performance_status (90/75 against 95/80).
        Anything at or above 0.90 that is not a near match, including
        actuals over the optimum, shows as on-target.
        """
        try:
            actual_num = float(actual)
            optimum_num = float(optimum)
        except (TypeError, ValueError):
            return None
        if math.isnan(actual_num) or math.isnan(optimum_num):
            return None
        if optimum_num == 0:
            return None

        ratio = actual_num / optimum_num
        if abs(actual_num - optimum_num) < 0.01:
            return ON_TARGET
        if 0.75 <= ratio < 0.90:
            return WARNING
        if ratio < 0.75:
            return BELOW_TARGET
        return ON_TARGET

    @staticmethod
    def cell_statuses(record: ProductionRecord) -> Dict[str, Optional[str]]:
        return {
            'actualWorkingTime': EfficiencyCalculator.cell_status(
                record.actual_working_time, record.optimum_working_time),
            'actualOutput': EfficiencyCalculator.cell_status(
                record.actual_output, record.optimum_output),
            'actualTotalOutput': EfficiencyCalculator.cell_status(
                record.actual_total_output, record.optimum_total_quantity),
        }


def machine_performance(records: List[ProductionRecord]) -> List[MachinePerformance]:
    """Per-machine mean efficiency over records with a positive efficiency"""
    grouped: Dict[str, Dict[str, Any]] = {}
    for record in records:
        efficiency = EfficiencyCalculator.calculate_efficiency(record)
        if efficiency <= 0:
            continue
        if record.machine_name not in grouped:
            grouped[record.machine_name] = {
                'records': [],
                'efficiencies': [],
                'firm_name': record.firm_name or 'Unknown',
            }
        grouped[record.machine_name]['records'].append(record)
        grouped[record.machine_name]['efficiencies'].append(efficiency)

    results = []
    for machine_name, data in grouped.items():
        avg = sum(data['efficiencies']) / len(data['efficiencies'])
        latest = max(data['records'], key=lambda r: parse_timestamp(r.timestamp) or datetime.min)
        results.append(MachinePerformance(
            machine_name=machine_name,
            firm_name=data['firm_name'],
            total_records=len(data['records']),
            average_efficiency=round_half_up(avg),
            status=EfficiencyCalculator.performance_status(avg),
            last_update=latest.date_time,
        ))

    return sorted(results, key=lambda m: m.average_efficiency, reverse=True)


def dashboard_stats(records: List[ProductionRecord], today: str) -> DashboardStats:
    """Overall band counts and average efficiency for the dashboard cards"""
    stats = DashboardStats(total=len(records))
    stats.today_records = sum(1 for r in records if r.date_time == today)

    total_efficiency = 0.0
    valid_records = 0
    for record in records:
        efficiency = EfficiencyCalculator.calculate_efficiency(record)
        if efficiency <= 0:
            continue
        status = EfficiencyCalculator.performance_status(efficiency)
        if status == EXCELLENT:
            stats.excellent += 1
        elif status == GOOD:
            stats.good += 1
        else:
            stats.poor += 1
        total_efficiency += efficiency
        valid_records += 1

    stats.average_efficiency = round_half_up(total_efficiency / valid_records) if valid_records else 0
    logger.info(f"Dashboard stats computed over {valid_records}/{len(records)} records with efficiency")
    return stats
