"""Persistence layer for AccessGate."""
