"""Newest-version index construction and queries."""
