import time
from typing import Set

from bingo import db, socketio
from bingo.errors import BingoError
from bingo.models import Match


_scheduled_matches: Set[int] = set()


def schedule_match_timer(app, match_id: int) -> None:
    """Expire a countdown mini-game once its deadline passes.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Ensures a single timer per match
    - Goes through the same expiry path a client countdown would call, so a
      client that expires the match first simply wins the race
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    with app.app_context():
        match = db.session.get(Match, match_id)
        if not match or match.status == 'completed':
            return
        deadline = match.state.get('deadline')
        if deadline is None:
            return
        if match_id in _scheduled_matches:
            app.logger.info(f"[timer-skip] match={match_id} already scheduled")
            return
        _scheduled_matches.add(match_id)
        delay = max(0.0, float(deadline) - time.time())
        app.logger.info(f"[timer-set] match={match_id} kind={match.mini_game} delay={delay:.1f}s deadline={deadline}")

    def _worker(mid: int, wait: float):
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
        if hb > 0:
            slept = 0.0
            while slept < wait:
                step = min(hb, wait - slept)
                time.sleep(step)
                slept += step
                app.logger.info(f"[timer-heartbeat] match={mid} remaining={max(0.0, wait - slept):.1f}s")
        else:
            time.sleep(wait)
        with app.app_context():
            _scheduled_matches.discard(mid)
            m = db.session.get(Match, mid)
            if not m or m.status == 'completed':
                app.logger.info(f"[timer-abort] match={mid} already resolved")
                return
            app.logger.info(f"[timer-fire] match={mid}")
            from bingo.services.minigames.arbiter import expire_match
            try:
                expire_match(m)
            except BingoError as exc:
                app.logger.info(f"[timer-fire] match={mid} expiry rejected: {exc.message}")

    if app.config.get('TESTING'):
        _worker(match_id, delay)
    else:
        socketio.start_background_task(_worker, match_id, delay)
