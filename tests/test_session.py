"""Session manager phase machine."""

import threading

import pytest

from fuse_pay.errors import NotAuthenticated, ProtocolError
from fuse_pay.session import Phase, SessionManager


def test_starts_unauthenticated():
    sm = SessionManager()
    assert sm.phase == Phase.UNAUTHENTICATED
    assert not sm.has_key
    assert sm.account_email is None


def test_full_transition_sequence():
    sm = SessionManager()
    sm.begin_key_negotiation("a@x.com")
    assert sm.phase == Phase.KEY_NEGOTIATED
    assert sm.account_email == "a@x.com"
    email, key = sm.require_key_negotiated()
    assert email == "a@x.com" and len(key) == 32

    sm.complete_authentication("T1")
    assert sm.phase == Phase.AUTHENTICATED
    assert sm.require_authenticated() == (key, "T1")


def test_cannot_authenticate_without_negotiation():
    sm = SessionManager()
    with pytest.raises(ProtocolError):
        sm.complete_authentication("T1")
    assert sm.phase == Phase.UNAUTHENTICATED


def test_second_negotiation_without_reset_fails_and_keeps_key():
    sm = SessionManager()
    sm.begin_key_negotiation("a@x.com")
    _, key = sm.require_key_negotiated()

    with pytest.raises(ProtocolError):
        sm.begin_key_negotiation("a@x.com")
    assert sm.require_key_negotiated()[1] == key


def test_negotiation_after_reset_generates_new_key():
    sm = SessionManager()
    sm.begin_key_negotiation("a@x.com")
    _, k1 = sm.require_key_negotiated()
    sm.reset()
    sm.begin_key_negotiation("a@x.com")
    _, k2 = sm.require_key_negotiated()
    assert k1 != k2


def test_cannot_renegotiate_once_authenticated():
    sm = SessionManager()
    sm.begin_key_negotiation("a@x.com")
    sm.complete_authentication("T1")
    with pytest.raises(ProtocolError):
        sm.begin_key_negotiation("b@x.com")
    with pytest.raises(ProtocolError):
        sm.complete_authentication("T2")
    assert sm.require_authenticated()[1] == "T1"


@pytest.mark.parametrize("steps", [0, 1])
def test_require_authenticated_fails_outside_authenticated(steps):
    sm = SessionManager()
    if steps:
        sm.begin_key_negotiation("a@x.com")
    with pytest.raises(NotAuthenticated):
        sm.require_authenticated()


def test_require_key_negotiated_fails_in_other_phases():
    sm = SessionManager()
    with pytest.raises(ProtocolError):
        sm.require_key_negotiated()
    sm.begin_key_negotiation("a@x.com")
    sm.complete_authentication("T1")
    with pytest.raises(ProtocolError):
        sm.require_key_negotiated()


def test_reset_is_idempotent_and_clears_everything():
    sm = SessionManager()
    sm.begin_key_negotiation("a@x.com")
    sm.complete_authentication("T1")
    sm.reset()
    sm.reset()
    assert sm.phase == Phase.UNAUTHENTICATED
    assert sm.snapshot() == {"phase": "UNAUTHENTICATED", "account_email": None, "has_key": False, "has_token": False}


def test_snapshot_and_repr_hide_secrets():
    sm = SessionManager()
    sm.begin_key_negotiation("a@x.com")
    sm.complete_authentication("secret-token")
    key, _ = sm.require_authenticated()
    text = repr(sm._session) + str(sm._session) + repr(sm.snapshot())
    assert "secret-token" not in text
    assert key.hex() not in text
    assert repr(key) not in text


def test_concurrent_negotiation_yields_single_key():
    sm = SessionManager()
    errors: list[Exception] = []
    barrier = threading.Barrier(8)

    def _attempt():
        barrier.wait()
        try:
            sm.begin_key_negotiation("a@x.com")
        except ProtocolError as e:
            errors.append(e)

    threads = [threading.Thread(target=_attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(errors) == 7
    assert sm.phase == Phase.KEY_NEGOTIATED


def test_authentication_for_a_reset_session_is_refused():
    sm = SessionManager()
    sm.begin_key_negotiation("a@x.com")
    _, stale_key = sm.require_key_negotiated()
    sm.reset()
    sm.begin_key_negotiation("b@x.com")

    with pytest.raises(ProtocolError):
        sm.complete_authentication("T-a", expected_key=stale_key)
    assert sm.phase == Phase.KEY_NEGOTIATED
    assert sm.snapshot()["has_token"] is False

    _, key = sm.require_key_negotiated()
    sm.complete_authentication("T-b", expected_key=key)
    assert sm.require_authenticated() == (key, "T-b")
