"""Catalog Service: write side of the product catalog."""
