"""Event log for TeamSync.

Public API:
- log.EventLog : append-only, resource-indexed log that assigns per-resource versions
"""
