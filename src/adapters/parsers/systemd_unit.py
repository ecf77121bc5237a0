"""Parser de unit files de systemd.

Soporta el subconjunto que aparece en unit files escritos a mano:
- secciones `[Name]`
- comentarios `#` / `;` y líneas vacías
- continuaciones con `\\` al final de línea
- claves repetidas (se conservan en orden)

Además interpreta el `ExecStart=` de gunicorn para extraer bind, workers y app.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field

from core.errors import UnitParseError


@dataclass
class UnitFile:
    sections: dict[str, list[tuple[str, str]]] = field(default_factory=dict)

    def get(self, section: str, key: str) -> str | None:
        values = self.get_all(section, key)
        return values[-1] if values else None

    def get_all(self, section: str, key: str) -> list[str]:
        return [v for k, v in self.sections.get(section, []) if k == key]

    def get_list(self, section: str, key: str) -> list[str]:
        """Valores separados por espacios de todas las apariciones (Requires=, After=...)."""

        out: list[str] = []
        for value in self.get_all(section, key):
            out.extend(value.split())
        return out


@dataclass
class GunicornCommand:
    executable: str
    bind: list[str] = field(default_factory=list)
    workers: str | None = None
    app: str | None = None
    access_logfile: str | None = None
    args: list[str] = field(default_factory=list)


def _logical_lines(text: str):
    buffer: list[str] = []
    start = 0
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not buffer:
            start = number
            if not line or line[0] in "#;":
                continue
        elif line and line[0] in "#;":
            # Comentarios dentro de una continuación se ignoran.
            continue
        if line.endswith("\\"):
            buffer.append(line[:-1].strip())
            continue
        buffer.append(line)
        yield start, " ".join(part for part in buffer if part)
        buffer = []
    if buffer:
        yield start, " ".join(part for part in buffer if part)


def parse_unit(text: str) -> UnitFile:
    unit = UnitFile()
    current: str | None = None
    for line_no, line in _logical_lines(text):
        if line.startswith("["):
            if not line.endswith("]") or len(line) < 3:
                raise UnitParseError(f"malformed section header {line!r}", line=line_no)
            current = line[1:-1].strip()
            unit.sections.setdefault(current, [])
            continue
        if current is None:
            raise UnitParseError("assignment outside of a section", line=line_no)
        if "=" not in line:
            raise UnitParseError(f"expected key=value, got {line!r}", line=line_no)
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            raise UnitParseError("empty key", line=line_no)
        unit.sections[current].append((key, value.strip()))
    return unit


_EXEC_PREFIXES = "-@+!:"

# Opciones de gunicorn que no llevan valor.
_FLAG_OPTIONS = frozenset(
    {
        "--reload",
        "--preload",
        "--daemon",
        "-D",
        "-R",
        "--check-config",
        "--print-config",
        "--spew",
        "--capture-output",
        "--enable-stdio-inheritance",
        "--no-sendfile",
        "--reuse-port",
        "--initgroups",
        "--strip-header-spaces",
        "--proxy-protocol",
        "--log-syslog",
        "--disable-redirect-access-to-syslog",
        "--do-handshake-on-connect",
        "--suppress-ragged-eofs",
        "--permit-unconventional-http-method",
        "--permit-unconventional-http-version",
        "--permit-obsolete-folding",
        "--casefold-http-method",
    }
)


def parse_exec_start(value: str) -> GunicornCommand:
    """Interpreta un `ExecStart=` de gunicorn."""

    try:
        tokens = shlex.split(value)
    except ValueError as exc:
        raise UnitParseError(f"cannot split ExecStart: {exc}") from exc
    if not tokens:
        raise UnitParseError("empty ExecStart")

    executable = tokens[0].lstrip(_EXEC_PREFIXES)
    if not executable:
        raise UnitParseError("ExecStart has no executable")
    cmd = GunicornCommand(executable=executable, args=tokens[1:])

    positionals: list[str] = []
    rest = tokens[1:]
    i = 0
    while i < len(rest):
        token = rest[i]
        if token in _FLAG_OPTIONS:
            i += 1
            continue
        if token.startswith("--") and "=" in token:
            option, option_value = token.split("=", 1)
        elif token.startswith("-") and not token.startswith("--") and len(token) > 2:
            option, option_value = token[:2], token[2:]
        elif token.startswith("-") and token != "-":
            option = token
            option_value = rest[i + 1] if i + 1 < len(rest) else None
            i += 1
        else:
            positionals.append(token)
            i += 1
            continue
        i += 1

        if option in ("--bind", "-b"):
            if option_value is not None:
                cmd.bind.append(option_value)
        elif option in ("--workers", "-w"):
            cmd.workers = option_value
        elif option == "--access-logfile":
            cmd.access_logfile = option_value

    if positionals:
        cmd.app = positionals[-1]
    return cmd
