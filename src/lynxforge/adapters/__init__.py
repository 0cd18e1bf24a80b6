"""Adapters binding lynxforge ports to real tools and services."""
