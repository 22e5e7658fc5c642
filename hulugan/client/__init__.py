"""Async client and console state for the fund pages."""

from .console import AdminConsole, FundViewer, Notice
from .gate import AuthorizationGate, GateState
from .http import HuluganClient

__all__ = [
    "AdminConsole",
    "AuthorizationGate",
    "FundViewer",
    "GateState",
    "HuluganClient",
    "Notice",
]
