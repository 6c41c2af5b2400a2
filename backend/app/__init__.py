"""Audio tour guide backend."""
