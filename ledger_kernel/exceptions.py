"""
Typed Exception Hierarchy for the ledger kernel and CSV ingestion.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers catch by type and read structured attributes instead of parsing
message strings. Every exception carries a class-level ``code`` that is
machine-readable and stable across message wording changes.

Example:
    try:
        strategy = service.create_strategy_from_export(export, resolutions)
    except UnresolvedReferenceError as e:
        log.warning(f"{e.reference_type} {e.name!r} is still unresolved")
        api_response(code=e.code, name=e.name)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ReferenceDataError
    |   +-- AccountNotFoundError
    |   +-- DuplicateAccountError
    |   +-- CategoryNotFoundError
    |   +-- CurrencyNotFoundError
    |
    +-- StrategyError
    |   +-- InvalidFieldMappingError
    |   +-- InvalidStrategyError
    |   +-- StrategyNotFoundError
    |   +-- DuplicateStrategyNameError
    |
    +-- StrategyExportError
    |   +-- ExportFormatError
    |   +-- UnresolvedReferenceError
    |
    +-- CsvImportError
        +-- ImportStateError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Reference data  | ACCOUNT_NOT_FOUND           | Account id/name doesn't exist
                | DUPLICATE_ACCOUNT           | Account name already taken
                | CATEGORY_NOT_FOUND          | Category id/name doesn't exist
                | CURRENCY_NOT_FOUND          | Currency id/code doesn't exist
----------------|-----------------------------|-----------------------------------------
Strategy        | INVALID_FIELD_MAPPING       | Mapping built with a bad mode/column combination
                | INVALID_STRATEGY            | Mapping keyed under the wrong field
                | STRATEGY_NOT_FOUND          | Strategy id/name doesn't exist
                | DUPLICATE_STRATEGY_NAME     | Strategy name already taken
----------------|-----------------------------|-----------------------------------------
Export          | EXPORT_FORMAT_INVALID       | Export document malformed
                | UNRESOLVED_REFERENCE        | Name still unresolved after resolutions
----------------|-----------------------------|-----------------------------------------
Import          | IMPORT_STATE_INVALID        | Import step called out of order

Row-level mapping failures are NOT exceptions: the row mapper returns them as
``MappingError`` values so one bad row never aborts a batch.
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Reference data exceptions


class ReferenceDataError(LedgerKernelError):
    """Base exception for account/category/currency errors."""

    code: str = "REFERENCE_DATA_ERROR"


class AccountNotFoundError(ReferenceDataError):
    """Account with given id or name was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class DuplicateAccountError(ReferenceDataError):
    """An account with this name already exists."""

    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Account already exists: {name}")


class CategoryNotFoundError(ReferenceDataError):
    """Category with given id or name was not found."""

    code: str = "CATEGORY_NOT_FOUND"

    def __init__(self, category_ref: str):
        self.category_ref = category_ref
        super().__init__(f"Category not found: {category_ref}")


class CurrencyNotFoundError(ReferenceDataError):
    """Currency with given id or code was not found."""

    code: str = "CURRENCY_NOT_FOUND"

    def __init__(self, currency_ref: str):
        self.currency_ref = currency_ref
        super().__init__(f"Currency not found: {currency_ref}")


# Strategy exceptions


class StrategyError(LedgerKernelError):
    """Base exception for import strategy errors."""

    code: str = "STRATEGY_ERROR"


class InvalidFieldMappingError(StrategyError):
    """
    A field mapping was constructed with an invalid configuration.

    Raised at construction time, before any row is processed.
    """

    code: str = "INVALID_FIELD_MAPPING"

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"Invalid {kind} mapping: {reason}")


class InvalidStrategyError(StrategyError):
    """A strategy's mappings are inconsistent with their keys."""

    code: str = "INVALID_STRATEGY"

    def __init__(self, strategy_name: str, reason: str):
        self.strategy_name = strategy_name
        self.reason = reason
        super().__init__(f"Invalid strategy {strategy_name!r}: {reason}")


class StrategyNotFoundError(StrategyError):
    """Strategy with given id or name was not found."""

    code: str = "STRATEGY_NOT_FOUND"

    def __init__(self, strategy_ref: str):
        self.strategy_ref = strategy_ref
        super().__init__(f"Strategy not found: {strategy_ref}")


class DuplicateStrategyNameError(StrategyError):
    """A different strategy already uses this name."""

    code: str = "DUPLICATE_STRATEGY_NAME"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Strategy name already in use: {name}")


# Export exceptions


class StrategyExportError(LedgerKernelError):
    """Base exception for strategy export/import errors."""

    code: str = "STRATEGY_EXPORT_ERROR"


class ExportFormatError(StrategyExportError):
    """The export document is malformed."""

    code: str = "EXPORT_FORMAT_INVALID"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid strategy export: {reason}")


class UnresolvedReferenceError(StrategyExportError):
    """
    A name or code embedded in an export still has no destination entity.

    The strategy is never built with a dangling or default reference.
    """

    code: str = "UNRESOLVED_REFERENCE"

    def __init__(self, reference_type: str, name: str):
        self.reference_type = reference_type
        self.name = name
        super().__init__(f"{reference_type.capitalize()} not found: {name}")


# Import exceptions


class CsvImportError(LedgerKernelError):
    """Base exception for CSV import protocol errors."""

    code: str = "IMPORT_ERROR"


class ImportStateError(CsvImportError):
    """An import step was called from the wrong stage."""

    code: str = "IMPORT_STATE_INVALID"

    def __init__(self, operation: str, stage: str, reason: str | None = None):
        self.operation = operation
        self.stage = stage
        self.reason = reason
        message = f"Cannot {operation} an import in stage {stage}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
