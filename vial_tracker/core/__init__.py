"""
Core modules for Vial Tracker.

This package contains the ledger, supply calculations, pagination,
the capacity guard and the edit session.
"""
