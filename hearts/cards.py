from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Iterable, List, Optional, Sequence

CLUBS = "clubs"
DIAMONDS = "diamonds"
HEARTS = "hearts"
SPADES = "spades"

SUITS = [CLUBS, DIAMONDS, HEARTS, SPADES]
# Display order for hands: clubs, diamonds, spades, hearts.
SORT_ORDER = [CLUBS, DIAMONDS, SPADES, HEARTS]
RANKS = list(range(2, 15))

JACK = 11
QUEEN = 12
KING = 13
ACE = 14

RANK_CHARS = {10: "T", JACK: "J", QUEEN: "Q", KING: "K", ACE: "A"}
CHAR_RANKS = {char: rank for rank, char in RANK_CHARS.items()}
SUIT_CHARS = {CLUBS: "C", DIAMONDS: "D", HEARTS: "H", SPADES: "S"}
CHAR_SUITS = {char: suit for suit, char in SUIT_CHARS.items()}
SUIT_SYMBOLS = {CLUBS: "♣", DIAMONDS: "♦", HEARTS: "♥", SPADES: "♠"}

HAND_SIZE = 13
NUM_PLAYERS = 4


@dataclass(frozen=True)
class Card:
    suit: str
    rank: int

    def __post_init__(self) -> None:
        if self.suit not in SUITS:
            raise ValueError(f"Unknown suit: {self.suit!r}")
        if self.rank not in RANKS:
            raise ValueError(f"Rank out of range: {self.rank!r}")

    @property
    def code(self) -> str:
        """Wire format, e.g. "2C", "TD", "QS"."""
        return RANK_CHARS.get(self.rank, str(self.rank)) + SUIT_CHARS[self.suit]

    @classmethod
    def from_code(cls, code: str) -> "Card":
        if not isinstance(code, str) or len(code) < 2:
            raise ValueError(f"Invalid card code: {code!r}")
        rank_part, suit_char = code[:-1].upper(), code[-1].upper()
        if suit_char not in CHAR_SUITS:
            raise ValueError(f"Invalid card code: {code!r}")
        if rank_part in CHAR_RANKS:
            rank = CHAR_RANKS[rank_part]
        elif rank_part.isdigit():
            rank = int(rank_part)
        else:
            raise ValueError(f"Invalid card code: {code!r}")
        return cls(CHAR_SUITS[suit_char], rank)

    @property
    def points(self) -> int:
        if self.suit == HEARTS:
            return 1
        if self.suit == SPADES and self.rank == QUEEN:
            return 13
        return 0

    def __str__(self) -> str:
        return RANK_CHARS.get(self.rank, str(self.rank)) + SUIT_SYMBOLS[self.suit]

    def __repr__(self) -> str:
        return f"Card({self.code})"


TWO_OF_CLUBS = Card(CLUBS, 2)
QUEEN_OF_SPADES = Card(SPADES, QUEEN)


def generate_deck() -> List[Card]:
    return [Card(suit, rank) for suit in SUITS for rank in RANKS]


def shuffle(deck: Sequence[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """Fisher-Yates shuffle into a new list; ``deck`` is left untouched."""
    randint = rng.randint if rng else random.randint
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def sort_key(card: Card) -> tuple:
    return (SORT_ORDER.index(card.suit), card.rank)


def sort_hand(hand: Iterable[Card]) -> List[Card]:
    return sorted(hand, key=sort_key)


def deal(deck: Sequence[Card]) -> List[List[Card]]:
    if len(deck) != HAND_SIZE * NUM_PLAYERS:
        raise ValueError("Deck must have exactly 52 cards")
    if len(set(deck)) != len(deck):
        raise ValueError("Deck contains duplicate cards")

    hands: List[List[Card]] = [[] for _ in range(NUM_PLAYERS)]
    for i, card in enumerate(deck):
        hands[i % NUM_PLAYERS].append(card)
    return [sort_hand(hand) for hand in hands]


def deal_new_hands(rng: Optional[random.Random] = None) -> List[List[Card]]:
    return deal(shuffle(generate_deck(), rng))


def cards_from_codes(codes: Iterable[str]) -> List[Card]:
    return [Card.from_code(code) for code in codes]


def cards_to_codes(cards: Iterable[Card]) -> List[str]:
    return [card.code for card in cards]
