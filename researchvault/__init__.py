"""Research Vault: tamper-evident storage for research entries."""

__version__ = "0.1.0"
