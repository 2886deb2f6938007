"""Multi-tenant WhatsApp to OpenAI relay."""

__version__ = "0.1.0"
