"""kpiflow: natural-language KPI and insight definitions over any backend."""

__version__ = "0.1.0"
