"""HTTP routers of the relay hub."""
