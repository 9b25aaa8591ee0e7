"""HTTP transport for the clinic operations engine."""
