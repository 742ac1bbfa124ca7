"""HTTP layer of the study application."""
