"""Shipment box inspection: header normalization, status classification and
completion rollups over Excel shipment lists."""

__version__ = "0.1.0"
