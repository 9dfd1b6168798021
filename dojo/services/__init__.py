"""External service adapters: object storage, auth and device media."""
