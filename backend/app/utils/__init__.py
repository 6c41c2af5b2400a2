"""Shared helpers: caching, geo math, rate limiting."""
