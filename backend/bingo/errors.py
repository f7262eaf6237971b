"""Error taxonomy shared by services and HTTP handlers.

Services raise these; the handlers registered in ``register_error_handlers``
turn them into ``{"error": ..., "code": ...}`` JSON responses. Nothing here is
fatal: a rejected operation leaves the store untouched and the client is
expected to refresh from the next ``state_update``.
"""

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError


class BingoError(Exception):
    status_code = 400
    code = 'error'

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(BingoError):
    status_code = 400
    code = 'invalid'


class Unauthorized(BingoError):
    status_code = 403
    code = 'unauthorized'


class NotFound(BingoError):
    status_code = 404
    code = 'not_found'


class RoomFull(BingoError):
    status_code = 409
    code = 'full'


class Conflict(BingoError):
    status_code = 409
    code = 'conflict'


class SquareContested(Conflict):
    code = 'square_contested'


class NoOpponent(BingoError):
    status_code = 409
    code = 'no_opponent'


class NotCreated(BingoError):
    status_code = 500
    code = 'not_created'


def register_error_handlers(app):
    from bingo import db

    @app.errorhandler(BingoError)
    def handle_bingo_error(exc):
        db.session.rollback()
        app.logger.info(f"[rejected] {exc.code}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(exc):
        db.session.rollback()
        app.logger.exception("[store-error] transient store failure")
        return jsonify({'error': 'Store temporarily unavailable, retry', 'code': 'transient'}), 503
