"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2).
- El dominio no conoce Jinja2, ficheros ni CLI: solo los nombres compartidos
  entre artefactos de despliegue.
"""
