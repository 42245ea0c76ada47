"""Ambient Bot: scheduled ambient world events for chat channels."""
