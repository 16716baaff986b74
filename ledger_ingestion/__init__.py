"""
ledger_ingestion -- Strategy-driven import of bank statement CSV files.

Provides the field mapping model, strategy matching, row-to-transfer mapping,
the portable strategy export format, and the two-phase import protocol that
creates missing accounts before committing transfers.

Architecture:
    ledger_ingestion/ is a top-level package layered on ledger_kernel/.
    Nothing in ledger_kernel/ imports from ingestion except the engine's
    ORM model registration.
"""
