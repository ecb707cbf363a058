from enum import Enum

# Scope value meaning "every department"
ALL_SCOPES = "All"

class TransactionDirection(Enum):
    """Represents whether money is coming into or out of the fund"""
    INCOME = "Thu" # in
    EXPENSE = "Chi" # out

class UserRole(Enum):
    ADMIN = "admin"
    STAFF = "staff"
