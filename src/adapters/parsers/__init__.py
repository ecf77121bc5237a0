"""Parsers de artefactos existentes (unit files, nginx, settings, requirements)."""
