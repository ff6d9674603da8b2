"""Shift roster engine.

Modules:
- timewindow: week/month keys, UTC normalization, period resolution
- config: load and validate configuration (YAML or JSON)
- errors: error taxonomy
- domain: SQLAlchemy models and repositories
- services: filters, attendance, bulk deletion, open-shift marketplace
- engine: auto-scheduling algorithms and the preview/commit orchestrator
- summary: pandas statistics over shifts and scheduling runs
- io: CSV import/export
- cli: command-line interface entrypoints
"""

__all__ = [
    "timewindow",
    "config",
    "errors",
    "domain",
    "services",
    "engine",
    "summary",
    "io",
    "cli",
]
