"""Ingestion pipeline components."""

from .ledger import DedupLedger
from .parser import EmailParser, ParseError

__all__ = ["DedupLedger", "EmailParser", "ParseError"]
