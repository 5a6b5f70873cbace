"""Sermon audio derived-artifact refresh service."""
