"""Resource managers shared across the package (logging)."""
