"""Signed HTTP access to the Yik Yak API."""
