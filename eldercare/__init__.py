"""Check-in ledger and reward redemption for the elder-care companion app."""

__version__ = "0.1.0"
