"""
Actor capabilities and the authorized_only decorator.
"""

import pytest

from errors import PermissionDeniedError
from security.auth import ADMIN, ActorContext, authorized_only


class Ledger:
    @authorized_only
    def write(self, actor, value):
        return value

    @authorized_only(capability="close")
    def close(self, actor):
        return "closed"


class TestActorContext:

    def test_writer_can_write(self):
        assert ActorContext.writer("u1").can("write")

    def test_reader_cannot_write(self):
        assert not ActorContext.reader("u1").can("write")

    def test_admin_implies_everything(self):
        admin = ActorContext("root", capabilities=frozenset({ADMIN}))
        assert admin.can("write")
        assert admin.can("close")

    def test_name_falls_back_to_user_id(self):
        assert ActorContext("u1").name == "u1"
        assert ActorContext.writer("u1", "Awa").name == "Awa"


class TestAuthorizedOnly:

    def test_allows_positional_actor(self):
        assert Ledger().write(ActorContext.writer("u1"), 5) == 5

    def test_allows_keyword_actor(self):
        assert Ledger().write(value=5, actor=ActorContext.writer("u1")) == 5

    def test_refuses_missing_capability(self):
        with pytest.raises(PermissionDeniedError):
            Ledger().write(ActorContext.reader("u1"), 5)

    def test_refuses_missing_actor(self):
        with pytest.raises(PermissionDeniedError):
            Ledger().write(None, 5)

    def test_custom_capability(self):
        with pytest.raises(PermissionDeniedError):
            Ledger().close(ActorContext.writer("u1"))
        closer = ActorContext("u2", capabilities=frozenset({"close"}))
        assert Ledger().close(closer) == "closed"
