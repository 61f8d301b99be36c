"""Short-link service with cache-first redirects, create quotas and click analytics."""

__version__ = "0.1.0"
