"""Constraint validation against live data.

Finds rows that would break the target schema's foreign keys and NOT NULL
columns once the migration applies them.  Problems with the target schema
itself (objects missing from the database, failing queries) are reported as
``ValidationIssue`` values so one bad definition never aborts a run, unless
``stop_on_first_error`` is set.

Usage:
    from db_migrator.schema.validator import ConstraintValidator

    validator = ConstraintValidator(introspector, config.validation)
    issues = validator.validate_all(target_schema)
    errors = [issue for issue in issues if issue.is_error]
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from db_migrator.config.models import ValidationConfig
from db_migrator.dialects.base import NO_IDENTIFIER
from db_migrator.exceptions import IntrospectionError, ValidationAbortedError
from db_migrator.schema.comparator import validate_schema
from db_migrator.schema.introspector import SchemaIntrospector
from db_migrator.schema.models import (
    Column,
    ForeignKey,
    IssueType,
    Schema,
    Severity,
    ValidationIssue,
)

logger = logging.getLogger(__name__)

# Candidate row identifiers, in order; "{table}" is replaced by the table name
IDENTIFIER_CANDIDATES = ("id", "{table}_id", "uuid", "guid", "key")


@dataclass
class ViolationScan:
    """Outcome of checking one foreign key, table, or column.

    Attributes:
        violations: One issue per offending row.
        missing: ``missing_*`` issues for absent database objects.
        errors: ``*_validation_error`` issues for failed queries.
        skipped: True if an absent object was ignored per configuration.
    """

    violations: list[ValidationIssue] = field(default_factory=list)
    missing: list[ValidationIssue] = field(default_factory=list)
    errors: list[ValidationIssue] = field(default_factory=list)
    skipped: bool = False

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.missing + self.errors + self.violations

    @property
    def ok(self) -> bool:
        """True if the check ran to completion."""
        return not (self.missing or self.errors or self.skipped)


class ConstraintValidator:
    """Detects foreign key and NOT NULL violations in live data.

    Args:
        introspector: Introspector bound to the database to check.
        config: Ignore flags, abort behaviour, and the per-check row cap.
            Defaults to ``ValidationConfig()``.

    Example:
        validator = ConstraintValidator(db.introspector)
        for issue in validator.validate_foreign_keys(target):
            print(issue.message)
    """

    def __init__(
        self,
        introspector: SchemaIntrospector,
        config: ValidationConfig | None = None,
    ):
        self.introspector = introspector
        self.config = config or ValidationConfig()

    @property
    def dialect(self):
        return self.introspector.dialect

    @property
    def client(self):
        return self.introspector.client

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def validate_all(self, target: Schema) -> list[ValidationIssue]:
        """Schema self-consistency, then foreign keys, then NOT NULL."""
        issues = validate_schema(target)
        issues.extend(self.validate_foreign_keys(target))
        issues.extend(self.validate_not_null_constraints(target))
        return issues

    def validate_foreign_keys(self, target: Schema) -> list[ValidationIssue]:
        """Check every foreign key declared in the target schema.

        Raises:
            ValidationAbortedError: On the first failed query when
                ``stop_on_first_error`` is set.
        """
        issues: list[ValidationIssue] = []
        checked = 0
        for table in target:
            for fk in table.foreign_keys:
                issues.extend(self.find_foreign_key_violations(fk).issues)
                checked += 1

        logger.info(
            "Checked %d foreign key(s): %d issue(s)", checked, len(issues)
        )
        return issues

    def validate_not_null_constraints(self, target: Schema) -> list[ValidationIssue]:
        """Check every NOT NULL column declared in the target schema.

        A table missing from the database is reported once, not once per
        column.

        Raises:
            ValidationAbortedError: On the first failed query when
                ``stop_on_first_error`` is set.
        """
        issues: list[ValidationIssue] = []
        checked = 0
        for table in target:
            columns = table.not_null_columns()
            if not columns:
                continue

            presence = self.scan_table_presence(table.table_name)
            issues.extend(presence.issues)
            if not presence.ok:
                continue

            for column in columns:
                issues.extend(self.find_null_violations(table.table_name, column).issues)
                checked += 1

        logger.info("Checked %d NOT NULL column(s): %d issue(s)", checked, len(issues))
        return issues

    # ------------------------------------------------------------------
    # Finding passes (shared with the fixer)
    # ------------------------------------------------------------------

    def find_foreign_key_violations(self, fk: ForeignKey) -> ViolationScan:
        """Find orphan rows of one foreign key.

        Existence of the source table, referenced table, source column, and
        referenced column is checked first; any absence skips the data
        query.
        """
        scan = ViolationScan()
        try:
            self._check_foreign_key_objects(fk, scan)
            if scan.missing or scan.skipped:
                return scan

            identifier_column = self.get_identifier_column(fk.table_name)
            sql = self.dialect.foreign_key_violations_query(
                fk, identifier_column, limit=self.config.max_issues_per_table
            )
            rows = self.client.fetch_all(sql)
        except SQLAlchemyError as e:
            message = (
                f"failed to validate foreign key {fk.constraint_name or fk.identity_key()} "
                f"(table: {fk.table_name}, column: {fk.column_name}, "
                f"references: {fk.referenced_table}.{fk.referenced_column}): {e}"
            )
            self._record_error(scan, e, message, IssueType.FOREIGN_KEY_VALIDATION_ERROR,
                               fk.table_name, fk.column_name,
                               {"constraint_name": fk.constraint_name})
            return scan

        primary_key = self._is_primary_key_like(fk.table_name, identifier_column)
        for row in rows:
            value = _as_text(row["foreign_key_value"])
            identifier = _as_text(row["row_identifier"])
            scan.violations.append(
                ValidationIssue(
                    type=IssueType.FOREIGN_KEY_VIOLATION,
                    severity=Severity.ERROR,
                    table=fk.table_name,
                    column=fk.column_name,
                    message=(
                        f"Foreign key violation: value '{value}' references "
                        f"non-existent record in {fk.referenced_table}.{fk.referenced_column}"
                    ),
                    primary_key=identifier if primary_key else None,
                    identifier=identifier,
                    details={
                        "constraint_name": fk.constraint_name,
                        "referenced_table": fk.referenced_table,
                        "referenced_column": fk.referenced_column,
                        "foreign_key_value": value,
                    },
                )
            )

        if scan.violations:
            logger.debug("%s: %d orphan row(s)", fk.identity_key(), len(scan.violations))
        return scan

    def scan_table_presence(self, table_name: str) -> ViolationScan:
        """Check a target table exists before scanning its NOT NULL columns.

        Absence yields a ``missing_table`` warning, or a silent skip when
        ``ignore_missing_tables`` is set.
        """
        scan = ViolationScan()
        try:
            exists = self.introspector.table_exists(table_name)
        except SQLAlchemyError as e:
            self._record_error(scan, e, f"failed to check table {table_name}: {e}",
                               IssueType.NULL_VALIDATION_ERROR, table_name)
            return scan

        if not exists:
            if self.config.ignore_missing_tables:
                scan.skipped = True
            else:
                scan.missing.append(
                    ValidationIssue(
                        type=IssueType.MISSING_TABLE,
                        severity=Severity.WARNING,
                        table=table_name,
                        message=f"Table '{table_name}' does not exist in the database",
                    )
                )
        return scan

    def find_null_violations(self, table_name: str, column: Column) -> ViolationScan:
        """Find rows with NULL in a column the target declares NOT NULL.

        The table is assumed to exist (see ``scan_table_presence``).  An
        absent column yields a ``missing_column`` warning, or a silent skip
        when ``ignore_missing_columns`` is set.
        """
        scan = ViolationScan()
        column_name = column.column_name
        try:
            if not self.introspector.column_exists(table_name, column_name):
                if self.config.ignore_missing_columns:
                    scan.skipped = True
                else:
                    scan.missing.append(
                        ValidationIssue(
                            type=IssueType.MISSING_COLUMN,
                            severity=Severity.WARNING,
                            table=table_name,
                            column=column_name,
                            message=(
                                f"Column '{column_name}' does not exist in table "
                                f"'{table_name}'"
                            ),
                        )
                    )
                return scan

            identifier_column = self.get_identifier_column(table_name)
            sql = self.dialect.null_violations_query(
                table_name,
                column_name,
                identifier_column,
                limit=self.config.max_issues_per_table,
            )
            rows = self.client.fetch_all(sql)
        except SQLAlchemyError as e:
            message = f"failed to validate NOT NULL constraint for {table_name}.{column_name}: {e}"
            self._record_error(scan, e, message, IssueType.NULL_VALIDATION_ERROR,
                               table_name, column_name)
            return scan

        primary_key = self._is_primary_key_like(table_name, identifier_column)
        for row in rows:
            identifier = _as_text(row["row_identifier"])
            scan.violations.append(
                ValidationIssue(
                    type=IssueType.NULL_CONSTRAINT_VIOLATION,
                    severity=Severity.ERROR,
                    table=table_name,
                    column=column_name,
                    message=(
                        f"NULL value found in column '{column_name}' "
                        "which will be set to NOT NULL"
                    ),
                    primary_key=identifier if primary_key else None,
                    identifier=identifier,
                    details={"data_type": column.data_type},
                )
            )

        if scan.violations:
            logger.debug(
                "%s.%s: %d NULL row(s)", table_name, column_name, len(scan.violations)
            )
        return scan

    # ------------------------------------------------------------------
    # Row identifiers
    # ------------------------------------------------------------------

    def get_identifier_column(self, table_name: str) -> str:
        """Pick a column to identify offending rows by.

        Tries ``id``, ``<table>_id``, ``uuid``, ``guid``, ``key`` in that
        order, then the first column in ordinal order, then
        ``NO_IDENTIFIER``.  This is a naming heuristic, not a primary key
        lookup: the column it picks may not be unique.
        """
        try:
            columns = self.introspector.get_table_columns(table_name)
        except IntrospectionError as e:
            logger.warning("No row identifier for %s: %s", table_name, e)
            return NO_IDENTIFIER

        names = [column.column_name for column in columns]
        for candidate in IDENTIFIER_CANDIDATES:
            candidate = candidate.format(table=table_name)
            if candidate in names:
                return candidate
        return names[0] if names else NO_IDENTIFIER

    @staticmethod
    def _is_primary_key_like(table_name: str, identifier_column: str) -> bool:
        return identifier_column in {
            candidate.format(table=table_name) for candidate in IDENTIFIER_CANDIDATES
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_foreign_key_objects(self, fk: ForeignKey, scan: ViolationScan) -> None:
        ignore_tables = self.config.ignore_missing_tables
        ignore_columns = self.config.ignore_missing_columns
        constraint = fk.constraint_name or fk.identity_key()

        def report(issue_type: str, column: str | None, message: str, ignored: bool) -> None:
            if ignored:
                scan.skipped = True
                return
            scan.missing.append(
                ValidationIssue(
                    type=issue_type,
                    severity=Severity.ERROR,
                    table=fk.table_name,
                    column=column,
                    message=message,
                    details={
                        "constraint_name": fk.constraint_name,
                        "referenced_table": fk.referenced_table,
                        "referenced_column": fk.referenced_column,
                    },
                )
            )

        source_exists = self.introspector.table_exists(fk.table_name)
        if not source_exists:
            report(
                IssueType.MISSING_TABLE,
                None,
                f"Source table '{fk.table_name}' does not exist in the database",
                ignore_tables,
            )

        referenced_exists = self.introspector.table_exists(fk.referenced_table)
        if not referenced_exists:
            report(
                IssueType.MISSING_REFERENCED_TABLE,
                fk.column_name,
                f"Referenced table '{fk.referenced_table}' does not exist in the "
                f"database (required by foreign key constraint '{constraint}')",
                ignore_tables,
            )

        if source_exists and not self.introspector.column_exists(fk.table_name, fk.column_name):
            report(
                IssueType.MISSING_COLUMN,
                fk.column_name,
                f"Column '{fk.column_name}' does not exist in table '{fk.table_name}'",
                ignore_columns,
            )

        if referenced_exists and not self.introspector.column_exists(
            fk.referenced_table, fk.referenced_column
        ):
            report(
                IssueType.MISSING_REFERENCED_COLUMN,
                fk.column_name,
                f"Referenced column '{fk.referenced_column}' does not exist in table "
                f"'{fk.referenced_table}' (required by foreign key constraint '{constraint}')",
                ignore_columns,
            )

    def _record_error(
        self,
        scan: ViolationScan,
        error: Exception,
        message: str,
        issue_type: str,
        table: str,
        column: str | None = None,
        details: dict | None = None,
    ) -> None:
        if self.config.stop_on_first_error:
            raise ValidationAbortedError(message) from error

        logger.warning(message)
        scan.errors.append(
            ValidationIssue(
                type=issue_type,
                severity=Severity.ERROR,
                table=table,
                column=column,
                message=message,
                details={**(details or {}), "error": str(error)},
            )
        )


def _as_text(value) -> str | None:
    return None if value is None else str(value)
