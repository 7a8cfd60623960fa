"""Adapters binding the identity pipeline to concrete stores and services."""
