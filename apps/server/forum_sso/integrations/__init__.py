"""Integrations with external identity providers."""
