"""Back end for the outbound dispatch dashboard."""
