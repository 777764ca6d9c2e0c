"""Stockroom: school inventory, stock ledger and asset loans."""
