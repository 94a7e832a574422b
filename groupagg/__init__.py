"""GROUP BY aggregation over phone records with custom hash tables, locally and across a small TCP cluster."""

__version__ = "0.1.0"