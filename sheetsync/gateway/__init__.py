"""Gateways to the replicated tabular sources"""

from sheetsync.gateway.base import SourceGateway
from sheetsync.gateway.sheets_client import GoogleSheetsGateway

__all__ = ["GoogleSheetsGateway", "SourceGateway"]
