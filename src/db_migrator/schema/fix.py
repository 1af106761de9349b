"""Constraint fix module -- repair data that would violate the target schema.

Removes or rewrites rows that break foreign keys (orphans) or NOT NULL
columns.  Every run is gated by a two-state safety mode: a dry run reports
how many rows each fix would touch without writing; only an explicitly
confirmed run executes the corrective ``DELETE``/``UPDATE`` statements.

Each corrective statement is a single set-based statement committed on its
own.  There is no transaction spanning statements: a failure part-way
through leaves earlier fixes applied, and the results collected so far are
still returned.

Usage:
    from db_migrator.schema.fix import (
        ConstraintFixer, ForeignKeyAction, resolve_fix_mode,
    )

    mode = resolve_fix_mode(dry_run=None, confirm=True)
    fixer = ConstraintFixer(validator)
    results = fixer.fix_foreign_key_violations(target, ForeignKeyAction.REMOVE, mode)
    for table, result in results.items():
        print(table, result.records_affected)
"""

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from db_migrator.exceptions import FixConfigurationError, ValidationAbortedError
from db_migrator.schema.models import Column, FixResult, FixResults, ForeignKey, Schema
from db_migrator.schema.validator import ConstraintValidator, ViolationScan

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Modes and actions
# ------------------------------------------------------------------


class FixMode(str, Enum):
    DRY_RUN = "dry-run"
    CONFIRMED = "confirmed"


class ForeignKeyAction(str, Enum):
    REMOVE = "remove"
    SET_NULL = "set-null"


class NullAction(str, Enum):
    REMOVE = "remove"
    SET_DEFAULT = "set-default"


def resolve_fix_mode(dry_run: bool | None = None, confirm: bool | None = None) -> FixMode:
    """Resolve the ``--dry-run``/``--confirm`` flags into a fix mode.

    ``None`` means the flag was not given.

    - Neither flag: dry run (the safe default).
    - ``dry_run=True``: dry run, even with ``confirm``.
    - ``confirm=True`` without an explicit dry run: confirmed.
    - ``dry_run=False`` without ``confirm``: rejected.

    Raises:
        FixConfigurationError: If writes were requested without confirmation.

    Examples:
        >>> resolve_fix_mode()
        <FixMode.DRY_RUN: 'dry-run'>
        >>> resolve_fix_mode(confirm=True)
        <FixMode.CONFIRMED: 'confirmed'>
    """
    if dry_run:
        return FixMode.DRY_RUN
    if confirm:
        return FixMode.CONFIRMED
    if dry_run is None:
        return FixMode.DRY_RUN
    raise FixConfigurationError("must use --confirm when not in dry-run mode")


def parse_foreign_key_action(name: "str | ForeignKeyAction") -> ForeignKeyAction:
    """Raises ``FixConfigurationError`` for anything but remove/set-null."""
    try:
        return ForeignKeyAction(name)
    except ValueError:
        raise FixConfigurationError(
            f"invalid action: {name} (must be 'remove' or 'set-null')"
        ) from None


def parse_null_action(name: "str | NullAction") -> NullAction:
    """Raises ``FixConfigurationError`` for anything but remove/set-default."""
    try:
        return NullAction(name)
    except ValueError:
        raise FixConfigurationError(
            f"invalid action: {name} (must be 'remove' or 'set-default')"
        ) from None


def check_null_fix_options(
    action: "str | NullAction", default_value: str | None
) -> NullAction:
    """Parse a NOT NULL fix action and check it has what it needs.

    Raises:
        FixConfigurationError: For an unknown action, or ``set-default``
            without a default value.
    """
    action = parse_null_action(action)
    if action is NullAction.SET_DEFAULT and default_value is None:
        raise FixConfigurationError("--default-value is required for set-default action")
    return action


# ------------------------------------------------------------------
# Fixer
# ------------------------------------------------------------------


class ConstraintFixer:
    """Applies (or simulates) fixes for constraint violations.

    The fixer reuses the validator's finding pass, so object-existence
    checks, ignore flags, and the identifier heuristic behave exactly as in
    ``validate``.  Results are aggregated per table.

    Args:
        validator: Validator bound to the database to fix.

    Example:
        fixer = ConstraintFixer(ConstraintValidator(db.introspector, config))
        results = fixer.fix_null_value_violations(
            target, NullAction.SET_DEFAULT, FixMode.CONFIRMED, default_value="n/a"
        )
    """

    def __init__(self, validator: ConstraintValidator):
        self.validator = validator

    @property
    def dialect(self):
        return self.validator.dialect

    @property
    def client(self):
        return self.validator.client

    def fix_foreign_key_violations(
        self,
        target: Schema,
        action: "str | ForeignKeyAction",
        mode: FixMode = FixMode.DRY_RUN,
    ) -> FixResults:
        """Remove orphan rows or null out their foreign key column.

        Args:
            target: Schema whose foreign keys to enforce.
            action: ``remove`` deletes orphan rows, ``set-null`` sets the
                foreign key column to NULL on them.
            mode: ``DRY_RUN`` counts rows only; ``CONFIRMED`` writes.

        Returns:
            ``FixResult`` per table that owns a checked foreign key.

        Raises:
            FixConfigurationError: For an unknown action, before any
                database access.
        """
        action = parse_foreign_key_action(action)
        results: FixResults = {}

        for fk in (fk for table in target for fk in table.foreign_keys):
            try:
                self._fix_foreign_key(fk, action, mode, results)
            except ValidationAbortedError as e:
                # stop_on_first_error: keep what was done so far
                _record_failure(results.setdefault(fk.table_name, FixResult()), str(e))
                break

        _log_summary("foreign key", mode, results)
        return results

    def fix_null_value_violations(
        self,
        target: Schema,
        action: "str | NullAction",
        mode: FixMode = FixMode.DRY_RUN,
        default_value: str | None = None,
    ) -> FixResults:
        """Remove rows with NULL in NOT NULL columns, or fill in a default.

        Args:
            target: Schema whose NOT NULL columns to enforce.
            action: ``remove`` deletes the rows, ``set-default`` sets the
                column to ``default_value`` on them.
            mode: ``DRY_RUN`` counts rows only; ``CONFIRMED`` writes.
            default_value: Replacement value, bound as a parameter.
                Required for ``set-default``.

        Returns:
            ``FixResult`` per table with NOT NULL columns.

        Raises:
            FixConfigurationError: For an unknown action or a missing
                default value, before any database access.
        """
        action = check_null_fix_options(action, default_value)

        results: FixResults = {}
        params = {"default_value": default_value} if action is NullAction.SET_DEFAULT else None

        for table in target:
            columns = table.not_null_columns()
            if not columns:
                continue
            try:
                self._fix_null_table(table.table_name, columns, action, params, mode, results)
            except ValidationAbortedError as e:
                # stop_on_first_error: keep what was done so far
                _record_failure(results.setdefault(table.table_name, FixResult()), str(e))
                break

        _log_summary("NOT NULL", mode, results)
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fix_null_table(
        self,
        table_name: str,
        columns: list[Column],
        action: NullAction,
        params: dict | None,
        mode: FixMode,
        results: FixResults,
    ) -> None:
        presence = self.validator.scan_table_presence(table_name)
        if not self._usable(presence, table_name, results):
            return

        for column in columns:
            scan = self.validator.find_null_violations(table_name, column)
            if not self._usable(scan, table_name, results):
                continue

            if action is NullAction.REMOVE:
                fix_sql = self.dialect.delete_null_rows_query(table_name, column.column_name)
            else:
                fix_sql = self.dialect.set_default_for_nulls_query(table_name, column.column_name)

            self._apply(
                table_name,
                len(scan.violations),
                count_sql=self.dialect.null_violation_count_query(table_name, column.column_name),
                fix_sql=fix_sql,
                params=params,
                description=f"{action.value} on {table_name}.{column.column_name}",
                mode=mode,
                results=results,
            )

    def _fix_foreign_key(
        self,
        fk: ForeignKey,
        action: ForeignKeyAction,
        mode: FixMode,
        results: FixResults,
    ) -> None:
        scan = self.validator.find_foreign_key_violations(fk)
        if not self._usable(scan, fk.table_name, results):
            return

        if action is ForeignKeyAction.REMOVE:
            fix_sql = self.dialect.delete_foreign_key_violations_query(fk)
        else:
            fix_sql = self.dialect.nullify_foreign_key_violations_query(fk)

        self._apply(
            fk.table_name,
            len(scan.violations),
            count_sql=self.dialect.foreign_key_violation_count_query(fk),
            fix_sql=fix_sql,
            params=None,
            description=f"{action.value} orphans of {fk.constraint_name or fk.identity_key()}",
            mode=mode,
            results=results,
        )

    def _usable(self, scan: ViolationScan, table_name: str, results: FixResults) -> bool:
        """Record a failed scan against its table; False if nothing to fix."""
        if scan.ok:
            return True
        if scan.missing or scan.errors:
            result = results.setdefault(table_name, FixResult())
            for issue in scan.missing + scan.errors:
                _record_failure(result, issue.message)
        # Ignored missing objects are skipped without a result
        return False

    def _apply(
        self,
        table_name: str,
        issues_found: int,
        *,
        count_sql: str,
        fix_sql: str,
        params: dict | None,
        description: str,
        mode: FixMode,
        results: FixResults,
    ) -> None:
        result = results.setdefault(table_name, FixResult())
        result.issues_found += issues_found
        if issues_found == 0:
            return

        try:
            if mode is FixMode.DRY_RUN:
                affected = int(self.client.fetch_scalar(count_sql) or 0)
                note = f"would {description}: {affected} row(s)"
            else:
                affected = self.client.execute(fix_sql, params)
                note = f"{description}: {affected} row(s)"
        except SQLAlchemyError as e:
            _record_failure(result, f"failed to {description}: {e}")
            return

        result.records_affected += affected
        result.details = f"{result.details}; {note}" if result.details else note
        logger.debug("%s: %s", table_name, note)


def _record_failure(result: FixResult, message: str) -> None:
    logger.warning(message)
    result.success = False
    result.error = f"{result.error}; {message}" if result.error else message


def _log_summary(kind: str, mode: FixMode, results: FixResults) -> None:
    affected = sum(result.records_affected for result in results.values())
    failed = sum(1 for result in results.values() if not result.success)
    logger.info(
        "%s fix (%s): %d table(s), %d record(s) affected, %d failed",
        kind,
        mode.value,
        len(results),
        affected,
        failed,
    )
