"""HTTP transport for batch image conversion."""
