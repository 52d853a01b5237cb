"""
Standard type definitions for database models.

Provides consistent types for monetary fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for commission amounts and wallet balances
# Precision: 18 digits total, 8 after decimal point
MoneyType = DECIMAL(18, 8)
