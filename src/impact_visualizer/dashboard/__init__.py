"""JSON API over one loaded manifest."""
