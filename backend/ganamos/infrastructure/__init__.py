"""Infrastructure Layer — database plumbing, logging, and outbound HTTP clients."""
