"""I/O modules for pydssio."""
