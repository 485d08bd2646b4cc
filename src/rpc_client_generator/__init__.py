"""Generate RPC client implementations from interface descriptions."""
