"""Adapters binding the workflow ports to concrete backends."""
