"""Route persistence backends."""
