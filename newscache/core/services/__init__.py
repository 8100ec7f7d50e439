"""Application services built on the DataCache interface."""
