"""Console presentation for the maintenance CLI."""
