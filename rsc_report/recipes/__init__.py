"""Bundled report recipes."""
