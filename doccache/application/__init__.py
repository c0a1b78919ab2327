"""Application layer: ports implemented by infrastructure."""
