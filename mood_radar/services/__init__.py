"""Services layer for Mood Radar.

Services implement the analysis logic and orchestrate provider calls.
Organized by feature:
- signals: Dedup, scoring, suggestions, aggregation and snapshot diffing
- providers: Retrieval, classification and agent clients
- pipeline: Staged orchestration, event streaming and resumable runs
"""
