"""
Identity Migration

Bulk-imports users and organizations exported from a legacy document store
into the Clerk identity service.

Supports:
- JSON array exports with a resumable starting offset
- Schema validation of every record before it is sent
- Fixed throttling between records and a fixed cooldown on rate limits
- Idempotent re-runs (already imported records are counted, not duplicated)
- A per-run failure log of every record that was not migrated
"""

__version__ = "0.1.0"
