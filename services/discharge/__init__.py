"""Discharged-patient reconciliation, listing, removal and export."""

from .board import DischargeBoard
from .export import build_export_frame, export_filename, format_rupees, write_export
from .listing import DateFilter, SortColumn, SortOrder, SortState, apply_view
from .reconciliation import (
    DischargeReconciler,
    ReconciliationResult,
    deduplicate,
    format_duration,
)
from .removal import RemovalResult, remove_discharge_record

__all__ = [
    "DateFilter",
    "DischargeBoard",
    "DischargeReconciler",
    "ReconciliationResult",
    "RemovalResult",
    "SortColumn",
    "SortOrder",
    "SortState",
    "apply_view",
    "build_export_frame",
    "deduplicate",
    "export_filename",
    "format_duration",
    "format_rupees",
    "remove_discharge_record",
    "write_export",
]
