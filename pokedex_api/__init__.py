"""Caching REST proxy in front of the public Pokemon API."""
