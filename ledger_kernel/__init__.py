"""
Ledger Kernel - reference data and ambient stack for CSV ingestion.

Provides:
- Accounts, categories and currencies (ORM + frozen value objects)
- Integer minor-unit Money scaled per currency
- Transfer persistence with free-form attributes
- Structured JSON logging, typed exceptions, YAML settings
"""

__version__ = "0.1.0"
