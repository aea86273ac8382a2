"""Service modules for the hospital records back-end."""

__all__ = [
    "clinical_charts",
    "discharge",
    "service_catalog",
]
