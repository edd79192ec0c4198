"""
Accrue

An interest-accruing balance ledger: principal grows linearly at a rate fixed
when an account is first funded, while the protocol-wide rate can only fall.
"""

__version__ = "1.0.0"
