"""Parser mínimo de configuración nginx.

Tokeniza directivas, bloques, comillas y comentarios, y construye un árbol de
`Directive`. `site_facts` resume lo que importa para el chequeo: server names,
listen, destinos de `proxy_pass` (resolviendo bloques `upstream`) y
locations de estáticos.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.domain.naming import PROXY_UNIX_PREFIX, UNIX_PREFIX
from core.errors import NginxParseError


@dataclass
class Directive:
    name: str
    args: list[str] = field(default_factory=list)
    block: list["Directive"] | None = None
    line: int = 0

    def children(self, name: str) -> list["Directive"]:
        return [d for d in self.block or [] if d.name == name]


@dataclass
class SiteFacts:
    server_names: list[str] = field(default_factory=list)
    listen: list[str] = field(default_factory=list)
    proxy_targets: list[str] = field(default_factory=list)
    static_locations: dict[str, tuple[str, str]] = field(default_factory=dict)
    ssl: bool = False

    @property
    def socket_paths(self) -> list[str]:
        paths: list[str] = []
        for target in self.proxy_targets:
            path = socket_from_proxy_target(target)
            if path is not None and path not in paths:
                paths.append(path)
        return paths


_SPECIAL = "{};"


def tokenize(text: str) -> list[tuple[str, int, bool]]:
    """Devuelve `(token, línea, entrecomillado)`."""

    tokens: list[tuple[str, int, bool]] = []
    i = 0
    line = 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\n":
            line += 1
            i += 1
            continue
        if ch.isspace():
            i += 1
            continue
        if ch == "#":
            while i < n and text[i] != "\n":
                i += 1
            continue
        if ch in _SPECIAL:
            tokens.append((ch, line, False))
            i += 1
            continue
        if ch in "\"'":
            quote = ch
            start_line = line
            i += 1
            buf: list[str] = []
            while True:
                if i >= n:
                    raise NginxParseError("unterminated quoted string", line=start_line)
                c = text[i]
                if c == "\\" and i + 1 < n:
                    buf.append(text[i + 1])
                    i += 2
                    continue
                if c == quote:
                    i += 1
                    break
                if c == "\n":
                    line += 1
                buf.append(c)
                i += 1
            tokens.append(("".join(buf), start_line, True))
            continue
        start = i
        while i < n and not text[i].isspace() and text[i] not in _SPECIAL:
            # `${var}` no abre un bloque.
            if text[i] == "$" and i + 1 < n and text[i + 1] == "{":
                close = text.find("}", i)
                i = close + 1 if close != -1 else n
                continue
            i += 1
        tokens.append((text[start:i], line, False))
    return tokens


def parse_nginx(text: str) -> list[Directive]:
    tokens = tokenize(text)
    pos = 0

    def parse_block(depth: int) -> list[Directive]:
        nonlocal pos
        out: list[Directive] = []
        while pos < len(tokens):
            tok, line, quoted = tokens[pos]
            if tok == "}" and not quoted:
                if depth == 0:
                    raise NginxParseError("unexpected '}'", line=line)
                pos += 1
                return out
            if tok in ("{", ";") and not quoted:
                raise NginxParseError(f"unexpected {tok!r}", line=line)

            name = tok
            pos += 1
            args: list[str] = []
            while True:
                if pos >= len(tokens):
                    raise NginxParseError(f"directive {name!r} is missing ';'", line=line)
                tok, _, quoted = tokens[pos]
                if quoted or tok not in _SPECIAL:
                    args.append(tok)
                    pos += 1
                    continue
                if tok == ";":
                    pos += 1
                    out.append(Directive(name=name, args=args, line=line))
                    break
                if tok == "{":
                    pos += 1
                    block = parse_block(depth + 1)
                    out.append(Directive(name=name, args=args, block=block, line=line))
                    break
                raise NginxParseError(f"directive {name!r} is missing ';'", line=line)
        if depth > 0:
            raise NginxParseError("unbalanced '{' (missing '}')", line=tokens[-1][1] if tokens else None)
        return out

    return parse_block(0)


def walk(directives: list[Directive]):
    for d in directives:
        yield d
        if d.block:
            yield from walk(d.block)


def socket_from_proxy_target(target: str) -> str | None:
    """Extrae la ruta del socket de `http://unix:/x.sock[:/uri]` o `unix:/x.sock`.

    Devuelve None para destinos TCP.
    """

    if target.startswith(PROXY_UNIX_PREFIX):
        rest = target[len(PROXY_UNIX_PREFIX):]
    elif target.startswith("https://unix:"):
        rest = target[len("https://unix:"):]
    elif target.startswith(UNIX_PREFIX):
        rest = target[len(UNIX_PREFIX):]
    else:
        return None
    # nginx separa la URI con ':' tras la ruta del socket.
    path, _, _uri = rest.partition(":")
    return path or None


def _upstream_servers(directives: list[Directive]) -> dict[str, list[str]]:
    upstreams: dict[str, list[str]] = {}
    for d in walk(directives):
        if d.name == "upstream" and d.args and d.block is not None:
            upstreams[d.args[0]] = [s.args[0] for s in d.children("server") if s.args]
    return upstreams


def site_facts(directives: list[Directive]) -> SiteFacts:
    facts = SiteFacts()
    upstreams = _upstream_servers(directives)

    for d in walk(directives):
        if d.name == "server" and d.block is not None:
            for sn in d.children("server_name"):
                for name in sn.args:
                    # nginx compara server_name sin distinguir mayúsculas (salvo regex).
                    if not name.startswith("~"):
                        name = name.lower()
                    if name != "_" and name not in facts.server_names:
                        facts.server_names.append(name)
            for listen in d.children("listen"):
                value = " ".join(listen.args)
                facts.listen.append(value)
                if "ssl" in listen.args:
                    facts.ssl = True
            if d.children("ssl_certificate"):
                facts.ssl = True
        elif d.name == "proxy_pass" and d.args:
            target = d.args[0]
            resolved = _resolve_upstream(target, upstreams)
            facts.proxy_targets.extend(resolved)
        elif d.name == "location" and d.block is not None and d.args:
            prefix = d.args[-1]
            for kind in ("alias", "root"):
                found = d.children(kind)
                if found and found[-1].args:
                    facts.static_locations[prefix] = (kind, found[-1].args[0])
                    break
    return facts


def _resolve_upstream(target: str, upstreams: dict[str, list[str]]) -> list[str]:
    for scheme in ("http://", "https://"):
        if target.startswith(scheme):
            host = target[len(scheme):].split("/", 1)[0]
            if host in upstreams:
                return upstreams[host]
    return [target]
