"""HTTP API for the homestay booking core."""
