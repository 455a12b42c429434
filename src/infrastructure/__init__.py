"""Infrastructure adapters (file I/O) grouped by bounded context."""
