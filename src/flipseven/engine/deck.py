from __future__ import annotations

import itertools
import random
from dataclasses import dataclass
from typing import Sequence

from .types import ACTION_KINDS, MODIFIER_KINDS, Card

ACTION_COPIES = 3
DECK_SIZE = 94


class DeckExhausted(RuntimeError):
    """Raised when a draw is attempted with both the deck and the discard pile empty."""


@dataclass(frozen=True)
class DrawResult:
    card: Card
    deck: list[Card]
    discard: list[Card]
    reshuffled: bool = False


def build_deck() -> list[Card]:
    """Return the fixed 94-card composition in catalog order.

    Numbers 12..1 appear as many times as their value plus a single 0, then one
    of each modifier, then three of each action card.
    """
    counter = itertools.count()
    cards: list[Card] = []

    for value in range(12, 0, -1):
        for _ in range(value):
            cards.append(Card(id=f"num-{value}-{next(counter)}", kind="number", value=value))
    cards.append(Card(id=f"num-0-{next(counter)}", kind="number", value=0))

    for mod in MODIFIER_KINDS:
        cards.append(Card(id=f"mod-{mod}-{next(counter)}", kind="modifier", modifier=mod))

    for action in ACTION_KINDS:
        for _ in range(ACTION_COPIES):
            cards.append(Card(id=f"act-{action}-{next(counter)}", kind="action", action=action))

    return cards


def shuffle(rng: random.Random, cards: Sequence[Card]) -> list[Card]:
    """Fisher-Yates shuffle into a new list; ``cards`` is left untouched."""
    out = list(cards)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randrange(i + 1)
        out[i], out[j] = out[j], out[i]
    return out


def draw(rng: random.Random, deck: Sequence[Card], discard: Sequence[Card]) -> DrawResult:
    """Take the top (last) card of ``deck``.

    An empty deck is rebuilt from the shuffled discard pile first. The input
    sequences are never modified; callers rebind to the returned piles.
    """
    new_deck = list(deck)
    new_discard = list(discard)
    reshuffled = False

    if not new_deck:
        if not new_discard:
            raise DeckExhausted("Deck and discard pile are both empty.")
        new_deck = shuffle(rng, new_discard)
        new_discard = []
        reshuffled = True

    card = new_deck.pop()
    return DrawResult(card=card, deck=new_deck, discard=new_discard, reshuffled=reshuffled)
