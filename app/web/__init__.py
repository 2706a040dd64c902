"""Request-level helpers: dependencies and query-string parsing."""
