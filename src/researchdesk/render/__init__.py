"""HTML rendering for exported research reports."""
