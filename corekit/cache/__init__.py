"""
In-memory caches.

Provides TimedMap, a key-value store whose entries expire after a
per-key time-to-live enforced by scheduled callbacks.
"""
