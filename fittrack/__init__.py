"""
FastAPI service for the fitness tracker's notification jobs and data actions.

Scheduled reminders are evaluated per user in their local timezone,
deduplicated against the notification log and delivered through Firebase
Cloud Messaging. Storage, queueing and push delivery sit behind small
Protocol interfaces so tests and local runs can use in-memory backends.
"""
