from __future__ import annotations

from typing import Sequence

SECRET_FLAGS = frozenset({"--auth-key", "--authkey"})


def redact_argv(argv: Sequence[str]) -> list[str]:
    """Mask values that follow secret flags (``--auth-key X`` or ``--auth-key=X``)."""

    out: list[str] = []
    hide_next = False
    for a in argv:
        if hide_next:
            out.append("***")
            hide_next = False
            continue
        flag, eq, _ = a.partition("=")
        if flag in SECRET_FLAGS:
            if eq:
                out.append(f"{flag}=***")
            else:
                out.append(a)
                hide_next = True
            continue
        out.append(a)
    return out
