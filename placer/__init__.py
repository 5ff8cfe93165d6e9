"""Placer: place-sharing REST backend."""
