"""Session boundary: protocol, transaction helper and the MySQL adapter."""

from __future__ import annotations

from .base import Session, Transaction, quote
from .config import ConnectionSettings, SslSettings
from .mysql import MySQLSession

__all__ = ["ConnectionSettings", "MySQLSession", "Session", "SslSettings", "Transaction", "quote"]
