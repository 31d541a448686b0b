"""Hearts rules engine: immutable game state, passing, trick play and AI seats."""

__version__ = "0.1.0"

from .cards import Card, deal, deal_new_hands, generate_deck, shuffle
from .rules import Play, can_play_card, get_trick_winner, legal_cards
from .state import GameState, Player, TransitionResult
from .passing import (
    execute_pass_phase,
    mark_player_ready_for_reveal,
    process_ai_passes,
    submit_pass_selection,
)
from .game import (
    initialize_round,
    new_game,
    play_card,
    prepare_new_round,
    reset_game_for_new_game,
    start_round_with_passing_phase,
)
from .ai import choose_ai_card, choose_ai_cards_to_pass, choose_ai_pass
from .persistence import state_from_dict, state_from_json, state_to_dict, state_to_json
