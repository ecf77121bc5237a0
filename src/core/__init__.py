"""Core de stackwright: dominio, configuración y servicios."""
