"""HTTP service for yieldbook property listings."""
