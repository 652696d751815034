"""Configuration module for SmartInvoice."""

from smart_invoice.config.logging import configure_logging, month_context
from smart_invoice.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging", "month_context"]
