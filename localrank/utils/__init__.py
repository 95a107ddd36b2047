"""Shared utilities: rounding, share links, rate limiting, bounded fetches, config files."""
