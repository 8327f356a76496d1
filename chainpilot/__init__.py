"""chainpilot - conversational wallet backend for preparing and confirming EVM transactions."""

__version__ = "0.1.0"
