"""Reverse geocoding used to enrich messages with an address."""
