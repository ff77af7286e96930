"""HTTP API of the reference annotation store."""
