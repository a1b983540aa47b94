DONATION_STATES = ["available", "claimed", "delivered", "cancelled"]
REQUEST_STATES = ["open", "fulfilled", "closed"]
VERIFICATION_STATES = ["pending", "verified", "rejected"]

DONATION_TRANSITIONS = {
    ("available", "claimed"):   {"roles": ["ngo"]},
    ("available", "cancelled"): {"roles": ["donor", "admin"]},
    ("claimed",   "cancelled"): {"roles": ["donor", "admin"]},
    ("claimed",   "delivered"): {"roles": ["donor", "ngo", "admin"]},
}

REQUEST_TRANSITIONS = {
    ("open", "fulfilled"): {"roles": ["donor"]},
    ("open", "closed"):    {"roles": ["ngo", "admin"]},
}

# profile verification_status; None means "never submitted"
VERIFICATION_TRANSITIONS = {
    (None,       "pending"):  {"roles": ["ngo"]},
    ("rejected", "pending"):  {"roles": ["ngo"]},
    ("pending",  "verified"): {"roles": ["admin"]},
    ("pending",  "rejected"): {"roles": ["admin"]},
}


def can_transition(transitions: dict, src, dst: str, role: str | None = None) -> bool:
    rule = transitions.get((src, dst))
    if not rule:
        return False
    return role is None or role in rule["roles"]


def sources_for(transitions: dict, dst: str) -> list:
    """States from which ``dst`` is reachable in one step."""
    return [src for (src, to) in transitions if to == dst]


def is_terminal(transitions: dict, state) -> bool:
    return not any(src == state for (src, _) in transitions)
