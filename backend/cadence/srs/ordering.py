"""Presentation order for a selected session."""

from __future__ import annotations

import random
from typing import Literal

from cadence.models.card_state import CardState
from cadence.srs.selector import DueSet

OrderStrategy = Literal["shuffle", "interleave"]

ORDER_STRATEGIES: tuple[str, ...] = ("shuffle", "interleave")


def shuffle_cards(cards: list[CardState], rng: random.Random) -> list[CardState]:
    """Return a uniformly shuffled copy (Fisher-Yates via rng.shuffle)."""
    shuffled = list(cards)
    rng.shuffle(shuffled)
    return shuffled


def interleave_cards(reviews: list[CardState], new_cards: list[CardState], new_every: int) -> list[CardState]:
    """Insert one new card after every `new_every` reviews; leftovers go last."""
    if new_every < 1:
        raise ValueError(f"new_every must be >= 1, got {new_every}")

    ordered: list[CardState] = []
    pending_new = iter(new_cards)
    for index, card in enumerate(reviews, start=1):
        ordered.append(card)
        if index % new_every == 0:
            new_card = next(pending_new, None)
            if new_card is not None:
                ordered.append(new_card)
    ordered.extend(pending_new)
    return ordered


def order_session(
    due_set: DueSet,
    rng: random.Random,
    strategy: OrderStrategy = "shuffle",
    new_every: int | None = None,
) -> list[CardState]:
    """Turn a due set into the sequence shown to the learner.

    "shuffle" is a plain uniform shuffle of all selected cards. "interleave"
    shuffles reviews and new cards separately and spaces new cards one per
    `new_every` reviews (default 10).
    """
    if strategy == "shuffle":
        return shuffle_cards([*due_set.due_cards, *due_set.new_cards], rng)
    if strategy == "interleave":
        reviews = shuffle_cards(due_set.due_cards, rng)
        new_cards = shuffle_cards(due_set.new_cards, rng)
        return interleave_cards(reviews, new_cards, new_every if new_every is not None else 10)
    raise ValueError(f"Unknown session order strategy: {strategy!r}")
