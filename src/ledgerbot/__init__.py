"""ledgerbot: a chat bot that keeps a household money ledger."""

__version__ = "0.1.0"
