"""Jerarquía de errores de stackwright.

Reglas:
- Todo error esperado (fichero inválido, plantilla rota, conflicto al escribir)
  hereda de `StackwrightError` para que la CLI lo convierta en un mensaje limpio.
- Los errores de parseo llevan el número de línea cuando se conoce.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.domain.models import CheckReport


class StackwrightError(Exception):
    """Error base de la aplicación."""


class DeploymentFileError(StackwrightError):
    """El descriptor de despliegue no existe, no es JSON o no valida."""


class TemplateRenderError(StackwrightError):
    """Una plantilla Jinja2 falló al renderizar (variable ausente, sintaxis)."""


class ArtifactExistsError(StackwrightError):
    """Ya existe un fichero distinto en la ruta de salida."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Refusing to overwrite existing file: {path} (use --overwrite)")
        self.path = path


class ArtifactIOError(StackwrightError):
    """Un artefacto no se puede leer (o no es UTF-8) o no se puede escribir."""

    def __init__(self, path: str, reason: object, *, action: str = "read") -> None:
        super().__init__(f"cannot {action} {path}: {reason}")
        self.path = path


class InconsistentArtifactsError(StackwrightError):
    """Los artefactos renderizados no superan su propio chequeo."""

    def __init__(self, report: "CheckReport") -> None:
        errors = [f.message for f in report.errors]
        super().__init__("Rendered artifacts are inconsistent: " + "; ".join(errors))
        self.report = report


class ParseError(StackwrightError):
    """Error de parseo de un artefacto de configuración."""

    artifact = "file"

    def __init__(self, message: str, *, line: int | None = None) -> None:
        location = f" (line {line})" if line is not None else ""
        super().__init__(f"{self.artifact}: {message}{location}")
        self.line = line
        self.detail = message


class UnitParseError(ParseError):
    artifact = "systemd unit"


class NginxParseError(ParseError):
    artifact = "nginx config"


class SettingsParseError(ParseError):
    artifact = "django settings"


class ManifestError(ParseError):
    artifact = "requirements"
