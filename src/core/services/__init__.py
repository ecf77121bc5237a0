"""Servicios del Core: render, chequeo de consistencia y reproducibilidad."""
