"""
Role classification for approval permissions.

Role metadata is free text and may hold several comma-separated roles
("Engineering Manager, Mentor") or arrive as a list. A role token grants
manager access when one of the privileged tokens appears in it as a run
of whole words, so "Engineering Manager" qualifies while
"Senior Manager's Assistant" and "Administrator" do not.
"""
from typing import Any, Iterable, List

MANAGER_ROLE_TOKENS = ("manager", "director", "admin", "people ops")


def normalize_role_tokens(role_input: Any) -> List[str]:
    """Lower-case, split on commas, trim and drop empty tokens."""
    if isinstance(role_input, str):
        values: Iterable[Any] = [role_input]
    elif isinstance(role_input, (list, tuple, set)):
        values = role_input
    else:
        return []

    tokens = []
    for value in values:
        if not isinstance(value, str):
            continue
        for part in value.lower().split(","):
            part = " ".join(part.split())
            if part:
                tokens.append(part)
    return tokens


def _contains_phrase(words: List[str], phrase: List[str]) -> bool:
    size = len(phrase)
    return any(words[i:i + size] == phrase for i in range(len(words) - size + 1))


def has_role_token(role_input: Any, token: str) -> bool:
    phrase = token.lower().split()
    return any(
        _contains_phrase(role.split(), phrase)
        for role in normalize_role_tokens(role_input)
    )


def is_manager(role_input: Any) -> bool:
    """True when any role token carries manager-level permission."""
    return any(has_role_token(role_input, token) for token in MANAGER_ROLE_TOKENS)


def is_admin(role_input: Any) -> bool:
    return has_role_token(role_input, "admin")
