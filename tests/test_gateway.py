import pytest
from sqlalchemy import select

from app.crud import ConcurrentUpdateError, UserNotFoundError, get_user_by_tg_id, update_user_atomically
from app.crud.gateway import add_xp, loads_json
from app.models import XpLog


def _bump_from_another_session(session_factory, tg_user_id: int, amount: int) -> None:
    other = session_factory()
    try:
        user = get_user_by_tg_id(other, tg_user_id)
        user.xp += amount
        other.commit()
    finally:
        other.close()


class TestUpdateUserAtomically:
    def test_commits_mutation(self, db, make_user):
        make_user(1001)

        def mutate(user):
            user.xp = 40
            return "done"

        assert update_user_atomically(db, 1001, mutate) == "done"
        db.expire_all()
        assert get_user_by_tg_id(db, 1001).xp == 40

    def test_missing_user(self, db):
        with pytest.raises(UserNotFoundError):
            update_user_atomically(db, 404, lambda user: None)

    def test_retries_on_concurrent_commit(self, db, session_factory, make_user):
        make_user(1002)
        calls = []

        def mutate(user):
            calls.append(user.xp)
            if len(calls) == 1:
                # another request commits after our read
                _bump_from_another_session(session_factory, 1002, 7)
            add_xp(db, user, 50, "test")

        update_user_atomically(db, 1002, mutate)

        assert calls == [0, 7]
        db.expire_all()
        assert get_user_by_tg_id(db, 1002).xp == 57
        # the losing attempt's log entry was rolled back with it
        assert [log.amount for log in db.scalars(select(XpLog).where(XpLog.tg_user_id == 1002))] == [50]

    def test_gives_up_after_max_attempts(self, db, session_factory, make_user):
        make_user(1003)

        def mutate(user):
            _bump_from_another_session(session_factory, 1003, 1)
            user.xp += 100

        with pytest.raises(ConcurrentUpdateError) as exc:
            update_user_atomically(db, 1003, mutate, max_attempts=3)

        assert exc.value.attempts == 3
        db.expire_all()
        assert get_user_by_tg_id(db, 1003).xp == 3


class TestJsonColumns:
    def test_wrong_shape_falls_back_to_default(self):
        assert loads_json("[1, 2]", {}) == {}
        assert loads_json("not json", []) == []
        assert loads_json(None, {}) == {}
        assert loads_json('{"a": 1}', {}) == {"a": 1}
