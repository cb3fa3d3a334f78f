"""Realtime notification sockets."""
