"""
Pipeline entry points for JobLink.

A harvest run:
1. Collect - fetch every configured source concurrently
2. Normalize - build canonical postings, drop incomplete ones
3. Reconcile - upsert by source URL and log per-source counts
"""
