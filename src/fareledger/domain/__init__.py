"""Domain layer for fareledger application.

Services are resolved lazily: the database layer imports domain entities,
and importing the services eagerly here would make that a cycle.
"""

_SERVICES = {
    "NumberingService": "fareledger.domain.numbering",
    "ExportDataService": "fareledger.domain.export_data",
    "SnapshotService": "fareledger.domain.snapshot",
    "ExportArchiveService": "fareledger.domain.archive",
    "FleetService": "fareledger.domain.fleet",
    "VatCalculator": "fareledger.domain.vat",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
