"""HTTP API for the sentiment aggregator."""
