"""HTTP API for the session crawler."""
