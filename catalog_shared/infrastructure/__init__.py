"""
Infrastructure: database sessions, transactions and request correlation.
"""
