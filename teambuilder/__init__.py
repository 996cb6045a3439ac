"""Team building event backend."""
