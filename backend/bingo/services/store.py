"""Conditional writes against the shared store.

Every row two clients can race on carries a ``version`` counter. A write
only lands if the row still has the version the writer read, so the loser
of a race sees ``False`` and re-reads instead of clobbering the winner.
"""

from flask import current_app
from bingo import db


def bump_version(model, row_id: int, expected_version: int, **values) -> bool:
    """Like ``compare_and_set`` but leaves the transaction open.

    The caller adds its dependent writes (a participant row, a team change)
    and commits them together with the bump, or rolls back when this
    returns False.
    """
    values['version'] = expected_version + 1
    updated = (
        model.query
        .filter_by(id=row_id, version=expected_version)
        .update(values, synchronize_session=False)
    )
    return updated == 1


def compare_and_set(model, row_id: int, expected_version: int, **values) -> bool:
    """UPDATE model SET values, version+1 WHERE id=row_id AND version=expected."""
    updated = bump_version(model, row_id, expected_version, **values)
    db.session.commit()
    return updated


def update_where(model, row_id: int, criteria, **values) -> bool:
    """Guarded update: applies values only while ``criteria`` still holds."""
    updated = (
        model.query
        .filter(model.id == row_id, *criteria)
        .update(values, synchronize_session=False)
    )
    db.session.commit()
    return updated == 1


def max_attempts() -> int:
    return int(current_app.config.get('CAS_MAX_ATTEMPTS', 5))


def reload(obj):
    db.session.refresh(obj)
    return obj
