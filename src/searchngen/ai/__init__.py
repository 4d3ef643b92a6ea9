"""Remote completion client."""
