"""Sync state layer.

This package holds the pure last-writer-wins policy and the explicit
``SyncState`` owned by a reconciler. Nothing here performs I/O except
``SyncState`` persisting its pending flag through a local store.
"""
