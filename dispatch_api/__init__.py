"""HTTP API over dispatch_core."""
