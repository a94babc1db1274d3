"""Cross-cutting configuration and observability for generalizability."""
