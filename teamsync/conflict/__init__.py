"""Conflict detection and resolution for TeamSync.

When two or more team members mutate the same resource within the look-back
window, the engine opens a conflict and settles it with one of four modes:
  merge     - combine field-disjoint changes
  override  - the last writer wins
  rollback  - revert the resource to its pre-conflict state
  manual    - hand the decision to a person

Modules:
- detector : find colliding events and classify the collision
- policy   : choose a resolution mode and compute the resulting payload
- mergers  : task- and project-aware reconciliation rules
- store    : the conflict table
- stats    : aggregate counters for observability
"""
