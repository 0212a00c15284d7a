"""HTTP layer over the governance services."""
