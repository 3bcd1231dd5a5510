"""HTTP surface for preparing chat sessions and streaming their completions."""
