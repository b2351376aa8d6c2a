"""HTTP layer for the project content index."""
