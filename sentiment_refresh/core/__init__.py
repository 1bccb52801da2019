"""Core refresh pipeline components."""
