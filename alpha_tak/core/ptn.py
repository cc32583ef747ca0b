"""
Portable Tak Notation for whole games.

A game document carries tag pairs followed by numbered move pairs, each
move optionally followed by a {comment}:

    [Size "5"]
    [Komi "2"]

    1. a1 e5 {eval +0.000}
    2. Cc3 2e5-11
"""
import re
from typing import Dict, List, Optional, Sequence, Tuple

from alpha_tak.core.constants import DEFAULT_BOARD_SIZE, KOMI
from alpha_tak.core.errors import PTNParseError
from alpha_tak.core.game import GameResult, GameState
from alpha_tak.core.turn import Turn, turn_from_ptn

_TAG_PATTERN = re.compile(r'\[(\w+)\s+"([^"]*)"\]')
_COMMENT_PATTERN = re.compile(r"\{[^}]*\}")
_MOVE_NUMBER_PATTERN = re.compile(r"^\d+\.$")
_RESULTS = {"R-0", "0-R", "F-0", "0-F", "1-0", "0-1", "1/2-1/2", "*"}


def game_to_ptn(
    turns: Sequence[Turn],
    size: int = DEFAULT_BOARD_SIZE,
    komi: int = KOMI,
    result: Optional[GameResult] = None,
    comments: Optional[Sequence[Optional[str]]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> str:
    """
    Write a game as PTN.

    Args:
        turns: Turns in the order they were played, from the initial position
        size: Board size
        komi: Komi for Black
        result: Result to record in the tags, if known
        comments: Optional comment per turn (None for no comment)
        tags: Extra tag pairs

    Returns:
        PTN document
    """
    header = {"Size": str(size), "Komi": str(komi)}
    header.update(tags or {})
    if result is not None:
        header["Result"] = result.to_ptn()

    lines = [f'[{key} "{value}"]' for key, value in header.items()]
    lines.append("")

    comments = list(comments or [])
    for start in range(0, len(turns), 2):
        parts = [f"{start // 2 + 1}."]
        for i in range(start, min(start + 2, len(turns))):
            parts.append(turns[i].to_ptn())
            if i < len(comments) and comments[i]:
                parts.append(f"{{{comments[i]}}}")
        lines.append(" ".join(parts))
    return "\n".join(lines) + "\n"


def parse_ptn(text: str) -> Tuple[Dict[str, str], List[Turn]]:
    """
    Parse a PTN document into its tags and turns.

    Raises:
        PTNParseError: If any tag or turn is malformed
    """
    tags = {key: value for key, value in _TAG_PATTERN.findall(text)}
    body = _TAG_PATTERN.sub(" ", text)
    if "{" in _COMMENT_PATTERN.sub(" ", body):
        raise PTNParseError("Unterminated comment")
    body = _COMMENT_PATTERN.sub(" ", body)

    turns: List[Turn] = []
    for token in body.split():
        if _MOVE_NUMBER_PATTERN.match(token) or token in _RESULTS:
            continue
        turns.append(turn_from_ptn(token))
    return tags, turns


def game_from_ptn(text: str) -> GameState:
    """
    Replay a PTN document on a fresh game.

    Args:
        text: PTN document

    Returns:
        Game state after every recorded turn

    Raises:
        PTNParseError: If the document is malformed
        IllegalMoveError: If a recorded turn is not legal
    """
    tags, turns = parse_ptn(text)
    try:
        size = int(tags.get("Size", DEFAULT_BOARD_SIZE))
        komi = float(tags.get("Komi", KOMI))
    except ValueError as e:
        raise PTNParseError(f"Invalid header: {e}") from e
    if not komi.is_integer():
        raise PTNParseError(f"Komi must be a whole number of flats, got {tags['Komi']}")
    return GameState.from_turns(turns, size=size, komi=int(komi))
