"""Contratos del Core.

`ArtifactRenderer` es lo único que el pipeline de render conoce; las
implementaciones con Jinja2 viven en `adapters.renderers`.
"""
