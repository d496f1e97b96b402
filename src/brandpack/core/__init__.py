"""Provider-neutral core types."""
