"""In-memory perpetual futures exchange priced by a virtual AMM."""

__version__ = "0.1.0"

__all__ = ["amm", "constants", "errors", "exchange", "margin", "state", "trading", "validation"]