"""Shared helpers: exceptions, logging setup, environment flags."""
