"""TeamSync: concurrent-edit reconciliation for shared team resources.

Team members edit the same task or project settings from independent clients,
each applying an optimistic update first.  TeamSync logs every mutation,
detects collisions inside a short look-back window, and settles them by merge,
override, rollback, or a hand-off to a person.

Public API:
- engine.ReconciliationEngine : log_event / resolve_conflict / queries / cleanup
- engine.get_engine           : lazily created process-wide engine
- models                      : Event, Conflict, patch payloads, vocabularies
"""

from teamsync.engine import ReconciliationEngine, get_engine

__all__ = ["ReconciliationEngine", "get_engine"]
