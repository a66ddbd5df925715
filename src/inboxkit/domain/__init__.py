"""Inbox notification domain: model, rules and orchestration."""
