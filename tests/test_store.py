"""
Tests for the shared user store.
"""

import threading

import pytest

from user_service import User, UserNotFound, UserStore


@pytest.fixture
def users() -> UserStore:
    s = UserStore()
    for name, age in [("Ann", 30), ("Bob", 40), ("Cy", 50)]:
        s.add(User(name=name, age=age))
    return s


class TestUserStore:
    """Tests for UserStore."""

    def test_add_appends(self, users):
        users.add(User(name="Dee", age=20))

        assert len(users) == 4
        assert users.all()[-1] == User(name="Dee", age=20)

    def test_remove_shifts_down(self, users):
        removed = users.remove(1)

        assert removed == User(name="Bob", age=40)
        assert [u.name for u in users.all()] == ["Ann", "Cy"]

    def test_update_only_touches_target(self, users):
        updated = users.update(2, User(name="Cyd", age=51))

        assert updated == User(name="Cyd", age=51)
        assert [u.name for u in users.all()] == ["Ann", "Bob", "Cyd"]

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_out_of_range(self, users, index):
        assert not users.contains(index)
        with pytest.raises(UserNotFound):
            users.update(index, User(name="X", age=1))
        with pytest.raises(UserNotFound):
            users.remove(index)
        assert len(users) == 3

    def test_not_found_is_index_error(self):
        assert issubclass(UserNotFound, IndexError)

    def test_returned_users_are_copies(self, users):
        users.all()[0].name = "Mallory"
        users.update(1, User(name="Bo", age=41)).age = 99

        assert users.all()[0].name == "Ann"
        assert users.all()[1].age == 41

    def test_clear(self, users):
        users.clear()

        assert len(users) == 0
        assert users.all() == []

    def test_concurrent_writers(self):
        s = UserStore()

        def writer(n):
            for i in range(200):
                s.add(User(name=f"w{n}-{i}", age=i + 1))
            for _ in range(50):
                s.remove(0)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(s) == 8 * 150
