"""Registry client core: configuration, session and HTTP client."""
