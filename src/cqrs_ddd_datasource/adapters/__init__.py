"""Driver implementations."""
