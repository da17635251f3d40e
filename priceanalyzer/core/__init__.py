"""Cross-cutting concerns: logging and the error taxonomy."""
