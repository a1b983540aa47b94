from daansetu.core.states import (
    DONATION_STATES,
    DONATION_TRANSITIONS,
    REQUEST_TRANSITIONS,
    VERIFICATION_TRANSITIONS,
    can_transition,
    is_terminal,
    sources_for,
)


def test_donation_graph():
    assert can_transition(DONATION_TRANSITIONS, "available", "claimed", "ngo")
    assert not can_transition(DONATION_TRANSITIONS, "available", "claimed", "donor")
    assert can_transition(DONATION_TRANSITIONS, "claimed", "delivered")
    assert not can_transition(DONATION_TRANSITIONS, "available", "delivered")
    assert sorted(sources_for(DONATION_TRANSITIONS, "cancelled")) == ["available", "claimed"]


def test_terminal_states():
    terminal = [s for s in DONATION_STATES if is_terminal(DONATION_TRANSITIONS, s)]
    assert terminal == ["delivered", "cancelled"]
    assert is_terminal(REQUEST_TRANSITIONS, "fulfilled")
    assert is_terminal(REQUEST_TRANSITIONS, "closed")
    assert not is_terminal(REQUEST_TRANSITIONS, "open")


def test_verification_graph():
    assert can_transition(VERIFICATION_TRANSITIONS, None, "pending", "ngo")
    assert can_transition(VERIFICATION_TRANSITIONS, "rejected", "pending", "ngo")
    assert not can_transition(VERIFICATION_TRANSITIONS, "verified", "pending", "ngo")
    assert not can_transition(VERIFICATION_TRANSITIONS, "pending", "pending", "ngo")
    assert can_transition(VERIFICATION_TRANSITIONS, "pending", "verified", "admin")
    assert not can_transition(VERIFICATION_TRANSITIONS, "pending", "verified", "ngo")
