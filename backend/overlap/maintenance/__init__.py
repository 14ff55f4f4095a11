"""Operational jobs run outside the request path."""
