"""
Persisted encodings for lineups and substitution lists.

Substitution lists are stored as a JSON array of
``{"positionId", "playerOutId", "playerInId"}`` records in application order.
Lineups are stored as a JSON array of ``{"positionId", "playerId"}`` pairs.
Keys are always written in the same order with compact separators, so
``encode(decode(payload)) == payload`` for anything produced by ``encode``.
"""

import json
from typing import List, Optional, Sequence

from .lineup import LineupState, Substitution

_SEPARATORS = (",", ":")
EMPTY_LIST_PAYLOAD = "[]"


class PayloadDecodeError(ValueError):
    """Raised when a persisted payload cannot be decoded."""
    pass


def encode_substitutions(substitutions: Sequence[Substitution]) -> str:
    """Encode a substitution list, preserving order."""
    return json.dumps([sub.to_dict() for sub in substitutions], separators=_SEPARATORS)


def decode_substitutions(payload: Optional[str]) -> List[Substitution]:
    """
    Decode a persisted substitution list.

    Args:
        payload: JSON text; None or empty text decodes to an empty list

    Raises:
        PayloadDecodeError: If the payload is not a list of substitution records
    """
    records = _load_list(payload)
    substitutions = []
    for index, record in enumerate(records):
        if not isinstance(record, dict) or not record.get("positionId") or not record.get("playerInId"):
            raise PayloadDecodeError(f"Substitution #{index} is malformed: {record!r}")
        player_out = record.get("playerOutId")
        if player_out is not None and not isinstance(player_out, str):
            raise PayloadDecodeError(f"Substitution #{index} has invalid playerOutId: {player_out!r}")
        substitutions.append(Substitution.from_dict(record))
    return substitutions


def encode_lineup(lineup: LineupState) -> str:
    """Encode a lineup as ordered position/player pairs."""
    return json.dumps(
        [{"positionId": position_id, "playerId": player_id} for position_id, player_id in lineup.items()],
        separators=_SEPARATORS,
    )


def decode_lineup(payload: Optional[str], strict: bool = False) -> LineupState:
    """
    Decode a persisted lineup.

    Args:
        payload: JSON text; None or empty text decodes to an empty lineup
        strict: Reject payloads listing a player twice instead of normalising

    Raises:
        PayloadDecodeError: If the payload is not a list of lineup pairs
        LineupInvariantError: If strict and a player appears twice
    """
    records = _load_list(payload)
    pairs = []
    for index, record in enumerate(records):
        if not isinstance(record, dict) or not record.get("positionId") or not record.get("playerId"):
            raise PayloadDecodeError(f"Lineup entry #{index} is malformed: {record!r}")
        pairs.append((str(record["positionId"]), str(record["playerId"])))
    return LineupState.from_pairs(pairs, strict=strict)


def _load_list(payload: Optional[str]) -> list:
    if payload is None:
        return []
    if not isinstance(payload, str):
        raise PayloadDecodeError(f"Expected JSON text, got {type(payload).__name__}")
    if not payload.strip():
        return []
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise PayloadDecodeError(f"Invalid JSON payload: {e}") from e
    if not isinstance(data, list):
        raise PayloadDecodeError(f"Expected a JSON array, got {type(data).__name__}")
    return data
