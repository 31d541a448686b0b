"""
AI decisions for computer-controlled seats.

Every tier scores the same candidate list (the rule engine's legal cards)
and picks the best score; each difficulty subclasses the one below it and
adds terms to its scores:

- easy: pass dangerous cards, play low, dump the worst card when void.
- medium: penalty avoidance, low-card and spade protection, opponent voids.
- hard: card counting, dumping on the score leader, moon defense and pursuit,
  all tuned by how far the seat trails on cumulative score.

Decisions are pure functions of the game document; the only other input is
the RNG used to break ties between equally scored cards.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .cards import ACE, Card, JACK, KING, NUM_PLAYERS, QUEEN, QUEEN_OF_SPADES, SPADES, generate_deck
from .game import find_leader, legal_moves
from .passing import PASS_COUNT
from .rules import (
    get_trick_winner,
    is_heart,
    is_penalty_card,
    is_queen_of_spades,
    led_suit,
    trick_points,
)
from .state import DIFFICULTIES, EASY, HARD, MEDIUM, GameState

log = logging.getLogger(__name__)

LOW_CARD = 6
MID_RANGE = (7, 10)
EARLY_TRICKS = 4
PROTECTED_SUIT_SIZE = 4
MIN_LOW_FOR_PROTECTION = 3
CRITICAL_LOW_SPADES = 2
MOON_DETECTION_POINTS = 20
MOON_HEARTS_WITH_QUEEN = 6
MOON_HEARTS_WITHOUT_QUEEN = 10
MOON_PASS_THRESHOLD = 75

# Score-position aggressiveness for the hard tier; 0.5 is neutral.
BALANCED = 0.5
SCORE_DIVISOR = 60
MAX_SCORE_ADJUSTMENT = 0.3
MOON_THRESHOLD_RANGE = 30
LEADER_THRESHOLD_BASE = 25
LEADER_THRESHOLD_RANGE = 15
LEADER_DUMP_BONUS = 30


@dataclass(frozen=True)
class RoundMemory:
    """What any seat at the table has seen this round, rebuilt from the document."""

    played: FrozenSet[Card]
    voids: Tuple[FrozenSet[str], ...]

    @classmethod
    def from_state(cls, state: GameState) -> "RoundMemory":
        played = set()
        voids: List[set] = [set() for _ in state.players]
        for trick in state.tricks_played + (state.current_trick,):
            suit = led_suit(trick)
            for play in trick:
                played.add(play.card)
                if play.card.suit != suit:
                    voids[state.seat_index(play.seat_id)].add(suit)
        return cls(frozenset(played), tuple(frozenset(v) for v in voids))

    @property
    def queen_played(self) -> bool:
        return QUEEN_OF_SPADES in self.played

    def is_void(self, seat_index: int, suit: str) -> bool:
        return suit in self.voids[seat_index]

    def unseen(self, hand: Sequence[Card]) -> FrozenSet[Card]:
        """Cards still held by someone other than the owner of ``hand``."""
        return frozenset(generate_deck()) - self.played - frozenset(hand)

    def unseen_in_suit(self, suit: str, hand: Sequence[Card]) -> List[Card]:
        return sorted((c for c in self.unseen(hand) if c.suit == suit), key=lambda c: c.rank)

    def voids_among(self, seats: Sequence[int], suit: str) -> int:
        return sum(1 for seat in seats if self.is_void(seat, suit))


@dataclass(frozen=True)
class PlayContext:
    state: GameState
    seat_index: int
    legal: Tuple[Card, ...]
    memory: RoundMemory

    @classmethod
    def build(cls, state: GameState, seat_index: int, legal: Sequence[Card]) -> "PlayContext":
        return cls(state, seat_index, tuple(legal), RoundMemory.from_state(state))

    @property
    def hand(self) -> Tuple[Card, ...]:
        return self.state.players[self.seat_index].hand

    @property
    def trick(self):
        return self.state.current_trick

    @property
    def led_suit(self) -> Optional[str]:
        return led_suit(self.trick)

    @property
    def is_leading(self) -> bool:
        return not self.trick

    @property
    def is_first_trick(self) -> bool:
        return self.state.is_first_trick

    @property
    def tricks_played(self) -> int:
        return len(self.state.tricks_played)

    @property
    def is_last_to_play(self) -> bool:
        return len(self.trick) == NUM_PLAYERS - 1

    @property
    def penalty_in_trick(self) -> int:
        return trick_points(self.trick)

    @property
    def highest_led_rank(self) -> int:
        suit = self.led_suit
        return max((p.card.rank for p in self.trick if p.card.suit == suit), default=0)

    @property
    def winning_seat(self) -> Optional[int]:
        if not self.trick:
            return None
        return self.state.seat_index(self.trick[get_trick_winner(self.trick)].seat_id)

    @property
    def seats_after(self) -> List[int]:
        """Seats that still play after us in this trick."""
        remaining = NUM_PLAYERS - len(self.trick) - 1
        return [(self.seat_index + k) % NUM_PLAYERS for k in range(1, remaining + 1)]

    @property
    def opponents(self) -> List[int]:
        return [i for i in range(NUM_PLAYERS) if i != self.seat_index]


def _pick_best(cards: Sequence[Card], score: Callable[[Card], float], rng: random.Random) -> Card:
    scored = [(score(card), card) for card in cards]
    best = max(s for s, _ in scored)
    return rng.choice([card for s, card in scored if s == best])


class EasyStrategy:
    difficulty = EASY

    def choose_cards_to_pass(
        self, hand: Sequence[Card], rng: random.Random, aggressiveness: float = BALANCED
    ) -> List[Card]:
        scored = [(self.pass_score(card, hand), rng.random(), card) for card in hand]
        scored.sort(key=lambda t: (t[0], t[1]), reverse=True)
        return [card for _, _, card in scored[:PASS_COUNT]]

    def choose_card_to_play(self, ctx: PlayContext, rng: random.Random) -> Card:
        if ctx.is_leading:
            scorer = self.lead_score
        elif any(c.suit == ctx.led_suit for c in ctx.legal):
            scorer = self.follow_score
        else:
            scorer = self.dump_score
        return _pick_best(ctx.legal, lambda c: scorer(c, ctx), rng)

    def pass_score(self, card: Card, hand: Sequence[Card]) -> float:
        score = card.rank
        if is_queen_of_spades(card):
            score += 100
        if is_heart(card):
            score += 20 + card.rank
        if card.suit == SPADES and card.rank >= KING and QUEEN_OF_SPADES not in hand:
            score += 15
        return score

    def lead_score(self, card: Card, ctx: PlayContext) -> float:
        return -card.rank

    def follow_score(self, card: Card, ctx: PlayContext) -> float:
        return -card.rank

    def dump_score(self, card: Card, ctx: PlayContext) -> float:
        return card.points * 10 + card.rank


class MediumStrategy(EasyStrategy):
    difficulty = MEDIUM

    def pass_score(self, card: Card, hand: Sequence[Card]) -> float:
        score = super().pass_score(card, hand)
        suit_cards = [c for c in hand if c.suit == card.suit]

        if card.rank < LOW_CARD:
            score -= 35
        if card.rank >= JACK and len(suit_cards) >= PROTECTED_SUIT_SIZE:
            below = sum(1 for c in suit_cards if c.rank < card.rank)
            if below >= MIN_LOW_FOR_PROTECTION:
                score -= 20
        if card.suit == SPADES and card.rank < QUEEN:
            low_spades = sum(1 for c in suit_cards if c.rank < QUEEN)
            score -= 30 if low_spades <= CRITICAL_LOW_SPADES else 10
        if is_queen_of_spades(card):
            low_spades = sum(1 for c in suit_cards if c.rank < QUEEN)
            if low_spades >= MIN_LOW_FOR_PROTECTION:
                score -= 70
        if card.rank >= LOW_CARD and card.suit != SPADES and len(suit_cards) <= CRITICAL_LOW_SPADES:
            score += (MIN_LOW_FOR_PROTECTION - len(suit_cards)) * 8
        return score

    def lead_score(self, card: Card, ctx: PlayContext) -> float:
        score = 100 - card.rank * 3 - card.points * 6
        memory = ctx.memory

        if is_heart(card):
            score += 15 if card.rank <= 4 else -30
        if card.suit == SPADES:
            holds_queen = QUEEN_OF_SPADES in ctx.hand
            if card.rank < QUEEN and not holds_queen:
                score += 10 if memory.queen_played else 15
            elif card.rank < QUEEN and holds_queen:
                score -= 20
            if card.rank >= QUEEN and not memory.queen_played:
                score -= 25
        if ctx.tricks_played < EARLY_TRICKS and MID_RANGE[0] <= card.rank <= MID_RANGE[1]:
            score += 10
        if card.rank == min(c.rank for c in ctx.legal if c.suit == card.suit):
            score += 15

        # Opponents void in this suit can dump points on whoever wins it.
        score -= 15 * memory.voids_among(ctx.opponents, card.suit)
        return score

    def follow_score(self, card: Card, ctx: PlayContext) -> float:
        score = 100.0
        wins = card.rank > ctx.highest_led_rank
        penalty = ctx.penalty_in_trick

        if not wins:
            return score + 30 + card.rank

        if ctx.is_first_trick:
            return score + 20 + card.rank * 2
        if card.points:
            score -= 40 + card.points * 5
        if card.suit == SPADES and card.rank > QUEEN and not ctx.memory.queen_played:
            score -= 30
        if penalty:
            score -= 40 + penalty * 5
        elif ctx.is_last_to_play:
            score += 10 + card.rank * 2
        else:
            score -= 15 * (1 + card.rank / ACE)
        return score

    def dump_score(self, card: Card, ctx: PlayContext) -> float:
        score = 100.0
        if card.points:
            score += 50 + card.points * 3
        if is_queen_of_spades(card):
            score += 200
        if card.rank >= JACK and not card.points:
            score += card.rank * 2
        if card.suit == SPADES and card.rank < QUEEN:
            score -= 25
        return score


class HardStrategy(MediumStrategy):
    difficulty = HARD

    def choose_cards_to_pass(
        self, hand: Sequence[Card], rng: random.Random, aggressiveness: float = BALANCED
    ) -> List[Card]:
        if evaluate_moon_potential(hand) >= moon_threshold(aggressiveness):
            log.debug("Hard AI keeping hand for a moon attempt")
            scored = [(-card.rank - (20 if is_penalty_card(card) else 0), rng.random(), card) for card in hand]
            scored.sort(key=lambda t: (t[0], t[1]), reverse=True)
            return [card for _, _, card in scored[:PASS_COUNT]]
        return super().choose_cards_to_pass(hand, rng, aggressiveness)

    def choose_card_to_play(self, ctx: PlayContext, rng: random.Random) -> Card:
        if is_attempting_moon(ctx.state, ctx.seat_index):
            return _pick_best(ctx.legal, lambda c: self.moon_score(c, ctx), rng)
        return super().choose_card_to_play(ctx, rng)

    def moon_score(self, card: Card, ctx: PlayContext) -> float:
        """Take every trick: lead and follow high, throw away only worthless cards."""
        if ctx.is_leading or card.suit == ctx.led_suit:
            return card.rank * 10 + (5 if is_heart(card) else 0)
        return -card.points * 20 - card.rank

    def lead_score(self, card: Card, ctx: PlayContext) -> float:
        score = super().lead_score(card, ctx)
        unseen = ctx.memory.unseen_in_suit(card.suit, ctx.hand)

        if unseen and all(c.rank > card.rank for c in unseen):
            score += 20
        elif not unseen:
            score -= 10 + card.rank
        if card.suit == SPADES and card.rank > QUEEN and QUEEN_OF_SPADES in unseen:
            score -= 25
        if is_queen_of_spades(card):
            score -= 200

        shooter = detect_moon_shooter(ctx.state)
        if shooter is not None and shooter != ctx.seat_index:
            # Win a trick with a point in it before the shooter can sweep them all.
            score += card.rank * 2 + (10 if is_heart(card) else 0)
        return score

    def follow_score(self, card: Card, ctx: PlayContext) -> float:
        score = super().follow_score(card, ctx)
        wins = card.rank > ctx.highest_led_rank
        unseen = ctx.memory.unseen_in_suit(ctx.led_suit, ctx.hand)
        behind = ctx.seats_after

        if wins and not ctx.is_last_to_play and not ctx.is_first_trick:
            higher_out = any(c.rank > card.rank for c in unseen)
            void_behind = ctx.memory.voids_among(behind, ctx.led_suit)
            if not higher_out:
                score -= 10 * (1 + void_behind)
            if void_behind and not ctx.memory.queen_played:
                score -= 15

        shooter = detect_moon_shooter(ctx.state)
        if shooter is not None and shooter != ctx.seat_index and wins:
            if ctx.winning_seat == shooter or shooter in behind:
                score += 150 if ctx.penalty_in_trick or card.points else 40
        return score

    def dump_score(self, card: Card, ctx: PlayContext) -> float:
        score = super().dump_score(card, ctx)
        winner = ctx.winning_seat
        shooter = detect_moon_shooter(ctx.state)

        if shooter is not None and shooter != ctx.seat_index:
            if winner == shooter:
                if is_queen_of_spades(card):
                    score -= 350
                elif is_heart(card):
                    score -= 200
            elif card.points:
                score += 250
            return score

        aggr = score_aggressiveness(ctx.state, ctx.seat_index)
        leader = find_leader(ctx.state, leader_target_threshold(aggr))
        if card.points and leader is not None and winner == leader and winner != ctx.seat_index:
            score += LEADER_DUMP_BONUS * 2 * aggr
        if card.suit == SPADES and card.rank < QUEEN and not ctx.memory.queen_played:
            score -= 10
        return score


STRATEGIES: Dict[str, EasyStrategy] = {
    EASY: EasyStrategy(),
    MEDIUM: MediumStrategy(),
    HARD: HardStrategy(),
}


def get_strategy(difficulty: Optional[str]) -> EasyStrategy:
    if difficulty is None:
        return STRATEGIES[EASY]
    if difficulty not in STRATEGIES:
        raise ValueError(f"Unknown AI difficulty: {difficulty!r} (expected one of {DIFFICULTIES})")
    return STRATEGIES[difficulty]


def evaluate_moon_potential(hand: Sequence[Card]) -> int:
    """Rough 0..100 score of how well a hand could take all 26 points."""
    hearts = [c for c in hand if is_heart(c)]
    high = [c for c in hand if c.rank >= JACK]
    low = [c for c in hand if c.rank < LOW_CARD]

    score = len(high) * 8 + sum(1 for c in hearts if c.rank >= JACK) * 6
    if len(hearts) >= 5:
        score += 10
    if QUEEN_OF_SPADES in hand or any(c.suit == SPADES and c.rank >= KING for c in hand):
        score += 10
    score -= len(low) * 6
    return max(0, min(100, score))


def detect_moon_shooter(state: GameState) -> Optional[int]:
    """Seat that looks to be collecting every penalty point this round, if any."""
    round_scores = state.round_scores
    taken = state.points_cards_taken
    total = sum(round_scores)
    if not total:
        return None

    for i, points in enumerate(round_scores):
        if points != total:
            continue
        hearts = sum(1 for c in taken[i] if is_heart(c))
        has_queen = QUEEN_OF_SPADES in taken[i]
        if points >= MOON_DETECTION_POINTS:
            return i
        if (has_queen and hearts >= MOON_HEARTS_WITH_QUEEN) or hearts >= MOON_HEARTS_WITHOUT_QUEEN:
            return i
    return None


def is_attempting_moon(state: GameState, seat_index: int) -> bool:
    """Keep going for the moon while we hold every point taken and can still win tricks."""
    taken = state.round_scores
    if any(points for i, points in enumerate(taken) if i != seat_index):
        return False
    hand = state.players[seat_index].hand
    captured = taken[seat_index]
    if captured >= MOON_DETECTION_POINTS:
        return True
    threshold = moon_threshold(score_aggressiveness(state, seat_index))
    return captured > 0 and evaluate_moon_potential(hand) >= threshold


def score_adjustment(scores: Sequence[int], seat_index: int) -> float:
    """How far ``seat_index`` trails the table, scaled to +/-MAX_SCORE_ADJUSTMENT.

    Positive when behind (more points than the opponents' average).
    """
    others = [s for i, s in enumerate(scores) if i != seat_index]
    delta = scores[seat_index] - sum(others) / len(others)
    return max(-MAX_SCORE_ADJUSTMENT, min(MAX_SCORE_ADJUSTMENT, delta / SCORE_DIVISOR))


def score_aggressiveness(state: GameState, seat_index: int) -> float:
    return max(0.0, min(1.0, BALANCED + score_adjustment(state.scores, seat_index)))


def moon_threshold(aggressiveness: float) -> float:
    """Moon potential needed to go for the moon; trailing seats gamble sooner."""
    return MOON_PASS_THRESHOLD - (aggressiveness - BALANCED) * MOON_THRESHOLD_RANGE


def leader_target_threshold(aggressiveness: float) -> float:
    return LEADER_THRESHOLD_BASE - aggressiveness * LEADER_THRESHOLD_RANGE


def choose_ai_cards_to_pass(
    hand: Sequence[Card],
    difficulty: Optional[str] = EASY,
    rng: Optional[random.Random] = None,
    aggressiveness: float = BALANCED,
) -> List[Card]:
    if len(hand) < PASS_COUNT:
        raise ValueError("Hand too small to pass 3 cards")
    strategy = get_strategy(difficulty)
    return strategy.choose_cards_to_pass(list(hand), rng or random.Random(), aggressiveness)


def choose_ai_pass(state: GameState, seat_index: int, rng: Optional[random.Random] = None) -> List[Card]:
    """Pick the three cards an AI seat passes this round."""
    player = state.players[seat_index]
    chosen = choose_ai_cards_to_pass(
        player.hand,
        player.difficulty,
        rng=rng,
        aggressiveness=score_aggressiveness(state, seat_index),
    )
    log.debug(
        "%s AI seat %d passing %s %s",
        player.difficulty, seat_index, state.pass_direction, [str(c) for c in chosen],
    )
    return chosen


def choose_ai_card(
    state: GameState,
    seat_index: int,
    difficulty: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Card:
    legal = legal_moves(state, seat_index)
    if not legal:
        raise ValueError(f"Seat {seat_index} has no legal move")
    if difficulty is None:
        difficulty = state.players[seat_index].difficulty
    strategy = get_strategy(difficulty)
    card = strategy.choose_card_to_play(PlayContext.build(state, seat_index, legal), rng or random.Random())
    log.debug("%s AI seat %d plays %s (trick %d)", strategy.difficulty, seat_index, card, state.trick_number)
    return card


__all__ = [
    "EasyStrategy",
    "MediumStrategy",
    "HardStrategy",
    "PlayContext",
    "RoundMemory",
    "choose_ai_card",
    "choose_ai_cards_to_pass",
    "choose_ai_pass",
    "detect_moon_shooter",
    "evaluate_moon_potential",
    "get_strategy",
    "is_attempting_moon",
    "leader_target_threshold",
    "moon_threshold",
    "score_adjustment",
    "score_aggressiveness",
]
