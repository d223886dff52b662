"""Utility functions for the CHELSA extraction pipeline."""
