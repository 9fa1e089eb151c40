from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """The caller, as established by a verified bearer token.

    ``user_id`` is the token's ``sub`` claim and owns every progress,
    notes and chat item the request touches.
    """

    user_id: str
