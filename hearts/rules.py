from __future__ import annotations

from typing import Iterable, List, NamedTuple, Optional, Sequence

from .cards import Card, HEARTS, QUEEN_OF_SPADES, TWO_OF_CLUBS

TOTAL_POINTS = 26
GAME_END_SCORE = 100


class Play(NamedTuple):
    seat_id: str
    card: Card


Trick = Sequence[Play]


class Legality(NamedTuple):
    valid: bool
    reason: Optional[str] = None


class MoonShot(NamedTuple):
    shot: bool
    seat_index: Optional[int] = None


LEGAL = Legality(True)


def is_heart(card: Card) -> bool:
    return card.suit == HEARTS


def is_queen_of_spades(card: Card) -> bool:
    return card == QUEEN_OF_SPADES


def is_two_of_clubs(card: Card) -> bool:
    return card == TWO_OF_CLUBS


def is_penalty_card(card: Card) -> bool:
    return is_heart(card) or is_queen_of_spades(card)


def penalty_points(cards: Iterable[Card]) -> int:
    return sum(card.points for card in cards)


def trick_points(trick: Trick) -> int:
    return penalty_points(play.card for play in trick)


def led_suit(trick: Trick) -> Optional[str]:
    if not trick:
        return None
    return trick[0].card.suit


def has_suit(hand: Iterable[Card], suit: str) -> bool:
    return any(card.suit == suit for card in hand)


def can_play_card(
    card: Card,
    hand: Sequence[Card],
    current_trick: Trick,
    hearts_broken: bool,
    is_first_trick: bool,
) -> Legality:
    if card not in hand:
        return Legality(False, "Card not in hand")

    leading = not current_trick
    if is_first_trick and leading and TWO_OF_CLUBS in hand and not is_two_of_clubs(card):
        return Legality(False, "First trick must start with 2 of clubs")

    if not leading:
        suit = led_suit(current_trick)
        if has_suit(hand, suit):
            if card.suit != suit:
                return Legality(False, f"Must follow suit ({suit})")
            return LEGAL
    elif is_heart(card) and not hearts_broken:
        if not all(is_heart(c) for c in hand):
            return Legality(
                False, "Hearts cannot be led until hearts are broken (or you are out of all other suits)"
            )

    if is_first_trick and is_penalty_card(card):
        if not all(is_penalty_card(c) for c in hand):
            return Legality(False, "Cannot play cards worth points in the first trick")

    return LEGAL


def legal_cards(
    hand: Sequence[Card],
    current_trick: Trick,
    hearts_broken: bool,
    is_first_trick: bool,
) -> List[Card]:
    return [
        card
        for card in hand
        if can_play_card(card, hand, current_trick, hearts_broken, is_first_trick).valid
    ]


def get_trick_winner(trick: Trick) -> int:
    """Position within ``trick`` of the highest card of the led suit."""
    if not trick:
        raise ValueError("Cannot determine winner of empty trick")
    suit = led_suit(trick)
    winner = 0
    for i, play in enumerate(trick[1:], start=1):
        if play.card.suit == suit and play.card.rank > trick[winner].card.rank:
            winner = i
    return winner


def should_break_hearts(card: Card, hearts_broken: bool) -> bool:
    return hearts_broken or is_heart(card)


def check_shooting_the_moon(round_scores: Sequence[int]) -> MoonShot:
    shooters = [i for i, score in enumerate(round_scores) if score == TOTAL_POINTS]
    if len(shooters) == 1 and sum(round_scores) == TOTAL_POINTS:
        return MoonShot(True, shooters[0])
    return MoonShot(False)


def apply_shooting_the_moon(scores: Sequence[int], shooter_index: int) -> List[int]:
    return [0 if i == shooter_index else score + TOTAL_POINTS for i, score in enumerate(scores)]


def get_next_player_index(current_index: int, total_players: int) -> int:
    return (current_index + 1) % total_players


def find_player_with_two_of_clubs(state) -> int:
    for i, player in enumerate(state.players):
        if TWO_OF_CLUBS in player.hand:
            return i
    raise ValueError("No player has the 2 of clubs")


def is_game_over(scores: Sequence[int], game_end_score: int = GAME_END_SCORE) -> bool:
    return max(scores, default=0) >= game_end_score


def find_game_winner(scores: Sequence[int]) -> int:
    # Ties go to the first seat holding the minimum.
    return min(range(len(scores)), key=lambda i: scores[i])
