"""Reconciliation stage: insert-or-update harvested postings by source URL."""

from reconciliation.engine import reconcile, reconcile_all

__all__ = ["reconcile", "reconcile_all"]
