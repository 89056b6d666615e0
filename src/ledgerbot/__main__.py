"""Allow ``python -m ledgerbot``."""

from ledgerbot.main import run

run()
