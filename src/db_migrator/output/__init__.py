"""Report building and output formatting.

Usage:
    from db_migrator.output import Formatter, create_validation_report
"""

from db_migrator.output.formatter import SUPPORTED_FORMATS, Formatter
from db_migrator.output.reports import (
    ReportSummary,
    SchemaInfo,
    TableSummary,
    ValidationReport,
    create_schema_info,
    create_validation_report,
)

__all__ = [
    "Formatter",
    "SUPPORTED_FORMATS",
    "ReportSummary",
    "SchemaInfo",
    "TableSummary",
    "ValidationReport",
    "create_schema_info",
    "create_validation_report",
]
