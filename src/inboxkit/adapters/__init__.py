"""Adapters implementing the inbox ports."""
