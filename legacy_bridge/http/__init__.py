"""HTTP message values, request building and response emission."""
