"""
supper_batch -- Bounded batch rollover of business counters.

Rolls per-business daily and monthly counters into period archive
documents and resets the live counters, committing writes in batches
that never exceed the document store's per-commit ceiling.

Architecture:
    supper_batch/ is a top-level package.  It imports from supper_kernel;
    nothing in supper_kernel imports from supper_batch.

    domain/       pure plans, periods, decisions, cron (ZERO I/O)
    services/     entity source, accumulator, driver, history, scheduler
    models/       run-history ORM model
    orchestrator  DI container built from supper_config

Invariants:
    RO-1  Archive write precedes reset write for an entity, same commit
    RO-2  No commit exceeds the store's operation ceiling
    RO-3  Exactly one reset per well-formed active entity per run
    RO-4  Zero-activity entities get no archive record
    RO-5  Archive (overwrite) and reset (set-to-zero) writes are idempotent
    RO-6  Driver returns FAILED instead of retrying; scheduler owns retries
    RO-7  Clock and store are injected; no global handles
"""
