"""
Dojo: production adapters for the katalog core.

Postgres repositories (asyncpg), S3-compatible image storage (aioboto3),
the hosted auth endpoint (httpx + PyJWT) and a filesystem media source.
"""
