"""Organization-scoped in-memory message store."""
