"""
supper_kernel -- Shared infrastructure for the supper backend jobs.

Provides the document store (interface + SQLAlchemy implementation),
the injectable clock, structured logging and the typed exception
hierarchy.  Nothing in supper_kernel imports from supper_batch,
supper_config or supper_notify.
"""
