"""Adapters binding the catalog pipeline to concrete infrastructure."""
