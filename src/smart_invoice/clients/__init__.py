"""External service clients for SmartInvoice."""

from smart_invoice.clients.gemini import GeminiClient, GeminiNotConfigured, GeminiResponse

__all__ = [
    "GeminiClient",
    "GeminiNotConfigured",
    "GeminiResponse",
]
