"""
Standard type definitions for database models.

Provides consistent types for monetary and percentage fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts, balances, credits
# Precision: 18 digits total, 2 after decimal point
# Range: up to 9,999,999,999,999,999.99
MoneyType = DECIMAL(20, 2)

# Standard percentage type for yield and referral rates
# Precision: 7 digits total, 4 after decimal point
# Suitable for: 1.5000%, 5.0000%, 100.0000%
PercentType = DECIMAL(7, 4)

# Cap multiplier type (e.g., 2.00x, 3.00x)
MultiplierType = DECIMAL(6, 2)
