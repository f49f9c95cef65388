from __future__ import annotations


class ProbeError(Exception):
    pass


class ResourceError(ProbeError):
    """Falha de uma chamada ao controlador de recursos (kubectl)."""


class ValueParseError(ProbeError, ValueError):
    def __init__(self, line: str, reason: str = "not an integer timestamp"):
        super().__init__(f"failed to parse pod value as time {line!r}: {reason}")
        self.line = line


class StreamClosedError(ProbeError):
    """
    Um dos canais de entrada do correlator foi encerrado.
    Fatal: sem ele não há como produzir novos registros.
    """

    def __init__(self, source: str, reason: str = ""):
        msg = f"{source} stream closed"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.source = source
        self.reason = reason


class SetupError(ProbeError):
    pass
