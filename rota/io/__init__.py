"""I/O utilities for CSV import/export."""

from .export_csv import export_shifts_csv
from .import_csv import import_roles_csv

__all__ = [
    "import_roles_csv",
    "export_shifts_csv",
]
