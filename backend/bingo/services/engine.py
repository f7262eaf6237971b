"""Game engine: start, square challenges, match resolution, board apply.

No process owns a game. Every transition here is written so that a second
application (duplicate notification, double click, two clients racing) is a
no-op rather than a corruption:

- a game is only created when the room has no live game,
- a match is only completed while it is not yet completed,
- a cell is only written while it is still empty, via a version check.
"""

import json
import random
import time
from datetime import datetime, timezone
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from bingo import db
from bingo.errors import (
    Conflict, NoOpponent, NotFound, SquareContested, Unauthorized, ValidationError,
)
from bingo.models import Game, Match, Player, Room
from bingo.services.board import (
    EMPTY, RED, PURPLE, SIDES, detect_win, is_full, is_valid_square, new_board, other_side,
)
from bingo.services.minigames import choose_kind, get_kind, initial_state
from bingo.services.notify import publish_game, publish_match
from bingo.services.rooms import is_participant, roster
from bingo.services.scheduler import schedule_match_timer
from bingo.services.store import compare_and_set, max_attempts, reload, update_where
from bingo.services.teams import start_eligibility


def get_game(game_id: int) -> Game:
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFound('Game not found')
    return game


def get_match(match_id: int) -> Match:
    match = db.session.get(Match, match_id)
    if match is None:
        raise NotFound('Match not found')
    return match


def live_game(room: Room) -> Optional[Game]:
    return (
        room.games
        .filter(Game.status != 'ended')
        .order_by(Game.created_at.desc(), Game.id.desc())
        .first()
    )


def start_game(room: Room, actor: Optional[Player] = None, force: bool = False) -> Game:
    """Create the room's game, or return the one already running."""
    existing = live_game(room)
    if existing is not None:
        current_app.logger.info(f"[start] room={room.id} already has game={existing.id}; no-op")
        return existing

    eligibility = start_eligibility(room)
    if force:
        if actor is None or actor.id != room.host_player_id:
            raise Unauthorized('Only the host can force start')
        if not eligibility['force']:
            raise Conflict('Both teams need at least one player')
        # Keep "everyone was ready at start" true after the fact
        for player in roster(room):
            if not player.is_ready:
                player.is_ready = True
                db.session.add(player)
    else:
        if actor is not None and not is_participant(room, actor):
            raise Unauthorized('You are not in this room')
        if not eligibility['strict']:
            size = eligibility['team_size']
            raise Conflict(f'Both teams need {size} ready players to start')

    game = Game(
        room_id=room.id,
        board_state=json.dumps(new_board()),
        current_turn=RED,
        status='in_progress',
    )
    db.session.add(game)
    room.status = 'in_progress'
    db.session.add(room)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost the race against another start; theirs is the game
        db.session.rollback()
        existing = live_game(room)
        if existing is None:
            raise
        current_app.logger.info(f"[start] room={room.id} race lost to game={existing.id}")
        return existing

    current_app.logger.info(f"[start] room={room.id} game={game.id} force={force}")
    publish_game(game, 'game_started')
    return game


def create_match(game: Game, square: int, rng=None) -> Match:
    """Open a mini-game challenge for an empty square.

    Picks one random representative per side and a random mini-game kind.
    Turn ownership is the caller's business (see ``challenge_square``).
    """
    rng = rng or random
    if not is_valid_square(square):
        raise ValidationError('square must be an integer between 0 and 24')
    reload(game)
    if game.status != 'in_progress':
        raise Conflict(f'Game is {game.status}; no challenges accepted')
    if game.board[square] != EMPTY:
        raise Conflict(f'Square {square} is already claimed')
    contested = Match.query.filter(
        Match.game_id == game.id, Match.square == square, Match.status != 'completed'
    ).first()
    if contested is not None:
        raise SquareContested(f'Square {square} is already being contested')

    players = roster(game.room)
    reds = [p for p in players if p.team == RED]
    purples = [p for p in players if p.team == PURPLE]
    if not reds or not purples:
        raise NoOpponent('Both teams need at least one player to contest a square')

    kind = choose_kind(rng)
    match = Match(
        game_id=game.id,
        square=square,
        red_player_id=rng.choice(reds).id,
        purple_player_id=rng.choice(purples).id,
        mini_game=kind,
        status='active',
        game_state=json.dumps(initial_state(kind, time.time(), rng)),
    )
    db.session.add(match)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SquareContested(f'Square {square} is already being contested')

    current_app.logger.info(
        f"[match-create] game={game.id} match={match.id} square={square} kind={kind} "
        f"red={match.red_player_id} purple={match.purple_player_id}"
    )
    publish_match(match, 'match_created')
    if get_kind(kind).has_countdown:
        schedule_match_timer(current_app._get_current_object(), match.id)
    return match


def challenge_square(game: Game, square: int, actor: Optional[Player] = None, rng=None) -> Match:
    """Player-facing challenge: the actor's side must hold the turn."""
    reload(game)
    # An ended game has already flipped the turn; report it as over, not as a turn error
    if game.status != 'in_progress':
        raise Conflict(f'Game is {game.status}; no challenges accepted')
    if actor is not None:
        if actor.current_room_id != game.room_id:
            raise Unauthorized('You are not in this game')
        if actor.team not in SIDES:
            raise Unauthorized('Join a team first')
        if actor.team != game.current_turn:
            raise Unauthorized(f"It is {game.current_turn}'s turn")
    return create_match(game, square, rng=rng)


def complete_match(match: Match, winner: str) -> Match:
    """Record the match winner once and apply it to the board.

    Resolving an already completed match changes nothing; the stored winner
    stands. It still re-drives the board apply, which is itself a no-op when
    the cell was already written.
    """
    if winner not in SIDES:
        raise ValidationError(f"winner must be one of {', '.join(SIDES)}")

    claimed = update_where(
        Match, match.id, [Match.status != 'completed'],
        winner_team=winner, status='completed', version=Match.version + 1,
    )
    reload(match)
    if claimed:
        current_app.logger.info(f"[match-complete] match={match.id} square={match.square} winner={winner}")
    else:
        current_app.logger.info(
            f"[match-complete] match={match.id} already won by {match.winner_team}; ignoring {winner}"
        )
    apply_match_result(match)
    if claimed:
        publish_match(match, 'match_completed')
    return match


def apply_match_result(match: Match) -> Game:
    """Write a completed match into its game's board.

    Skipped when the cell is already taken or the game is over; in that case
    turn and status stay as they are.
    """
    if match.status != 'completed' or match.winner_team not in SIDES:
        raise Conflict('Match has no result to apply')

    for _ in range(max_attempts()):
        game = reload(get_game(match.game_id))
        if game.status != 'in_progress':
            current_app.logger.info(f"[board-skip] game={game.id} is {game.status}; match={match.id} not applied")
            return game
        board = game.board
        if board[match.square] != EMPTY:
            current_app.logger.info(
                f"[board-skip] game={game.id} square={match.square} already {board[match.square]}"
            )
            return game

        board[match.square] = match.winner_team
        values = {
            'board_state': json.dumps(board),
            'current_turn': other_side(game.current_turn),
        }
        winner = detect_win(board)
        if winner is not None:
            values.update(status='ended', winner_team=winner, ended_at=datetime.now(timezone.utc))
        elif is_full(board):
            values.update(status='ended', ended_at=datetime.now(timezone.utc))

        if compare_and_set(Game, game.id, game.version, **values):
            game = reload(game)
            current_app.logger.info(
                f"[board-apply] game={game.id} square={match.square} -> {match.winner_team} "
                f"turn={game.current_turn} status={game.status} winner={game.winner_team}"
            )
            if game.status == 'ended':
                _finish_room(game)
            publish_game(game, 'game_ended' if game.status == 'ended' else 'board_updated')
            return game
        current_app.logger.info(f"[board-retry] game={game.id} version moved; re-reading")

    raise Conflict('Board is busy, retry')


def _finish_room(game: Game) -> None:
    room = game.room
    room.status = 'finished'
    db.session.add(room)
    db.session.commit()
