"""Exchange request-signing services for MEXC and Kraken."""

__version__ = "1.0.0"
