"""
Design
======

The importer loads the exercise reference library from an externally hosted
dataset. It is triggered on demand by an operator and is safe to re-run.

General goals:

* All state is stored in the database and visible for reporting
* At most one job of a given kind is live (queued or running) at any time. This
  is enforced by a partial unique constraint on ImportJob rather than by a lock,
  so concurrent requests race in the database and exactly one wins
* Celery tasks are ephemeral: every status change is a conditional update keyed
  on the status the task expects, so a task and the stale job sweep can never
  both finalize the same job

The import process works like this:

1. An operator calls the deploy endpoint (or the ``update_exercise_library``
   management command). The dispatcher creates a queued ImportJob recording
   the configured source and, once that transaction commits, queues the
   runner task. The caller gets the job id back immediately.
2. The runner task moves the job from queued to running. A job which is no
   longer queued (for example because the sweep failed it) is left alone.
3. The runner streams the dataset from the exercise library storage or over
   HTTP, parses it incrementally into exercise records and upserts each record
   in order, matched on its external id. Bad records are counted and noted on
   the job without stopping the run; fetch errors, an unparsable dataset and
   database outages fail the job.
4. Progress counters are written every few records. If such a write finds the
   job is no longer running the runner stops.
5. At the end the job succeeds unless too few records were imported.
6. A periodic sweep fails live jobs which have not made progress within the
   liveness timeout, freeing the slot for a new job.
"""
