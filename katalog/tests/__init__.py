"""
Katalog Test Suite

Pure-core tests. Everything runs against the in-memory collaborators in
katalog.gateway; no database, storage bucket or network is needed.
"""
