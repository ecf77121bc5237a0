"""Adaptadores: plantillas, parsers y exportadores."""
