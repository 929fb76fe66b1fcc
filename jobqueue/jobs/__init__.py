"""
In-memory background job processing.

This package provides:
- Priority-ordered dispatch with a bounded concurrency budget
- Registry-based pluggable handlers with optional typed payloads
- Delayed jobs and linear retry backoff
- Lifecycle events, statistics and cleanup of finished jobs
"""
