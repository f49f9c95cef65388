from __future__ import annotations

from .errors import ValueParseError


def parse_timestamp(line: str) -> int:
    """
    Converte a linha lida no pod (epoch em segundos) para int.

    Linha vazia acontece enquanto o volume ainda não tem valor;
    qualquer conteúdo não numérico vira ValueParseError.
    """
    if line is None:
        raise ValueParseError("", "no content")

    s = str(line).strip()
    if not s:
        raise ValueParseError(s, "empty line")

    digits = s[1:] if s[0] in "+-" else s
    # isdigit aceita dígitos unicode que int() não converte ("²")
    if not digits or not (digits.isascii() and digits.isdigit()):
        raise ValueParseError(s)

    return int(s)
