"""Enumeration types for loan portfolio entities."""

from enum import Enum


class LoanStatus(str, Enum):
    ACTIVE = "Active"
    LATE = "Late"
    COMPLETED = "Completed"


class InstallmentState(str, Enum):
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    DUE_TODAY = "DUE_TODAY"
    DUE_TOMORROW = "DUE_TOMORROW"
    OPEN = "OPEN"


class AlertSeverity(str, Enum):
    OVERDUE = "overdue"
    DUE = "due"


class MergeMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


class ChangeSource(str, Enum):
    LOCAL = "LOCAL"
    MERGE = "MERGE"
    SNAPSHOT = "SNAPSHOT"
