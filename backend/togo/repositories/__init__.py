"""
Repositories package — data-access layer.

Each repository file handles all DB operations for one table.
Repositories do NOT handle HTTP concerns.

Convention:
    - One file per table (users.py, tasks.py)
    - Session-level functions accept `AsyncSession` as the first argument
      and flush, never commit, so callers can compose them inside one
      transaction (see `togo.services.quota`)
    - Functions that accept a `Database` own their session and take an
      optional `timeout`
    - Results are frozen dataclasses detached from the session
    - Driver errors are re-raised as `togo.core.errors` exceptions tagged
      with the operation name
"""
