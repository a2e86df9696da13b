import secrets
import string
import time

ORG_CODE_PREFIX_LENGTH = 3
ORG_CODE_SUFFIX_LENGTH = 5
ORG_CODE_FILLER = "X"


def new_organization_id() -> str:
    """Opaque organization id: millisecond timestamp plus random hex."""
    return f"ORG_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def organization_code_prefix(org_name: str) -> str:
    # upper-case before slicing: "ß".upper() is "SS"
    letters = "".join(
        ch if ch in string.ascii_uppercase else ORG_CODE_FILLER
        for ch in (org_name or "").strip().upper())
    return letters[:ORG_CODE_PREFIX_LENGTH].ljust(ORG_CODE_PREFIX_LENGTH, ORG_CODE_FILLER)


def new_organization_code(org_name: str) -> str:
    """
    Human shareable code, e.g. ``ACM-3F9A2``.

    Callers must re-roll when the store already holds the value.
    """
    suffix = secrets.token_hex(3).upper()[:ORG_CODE_SUFFIX_LENGTH]
    return f"{organization_code_prefix(org_name)}-{suffix}"


def new_admin_id(org_code: str) -> str:
    return f"ADM-{org_code}"


def new_one_time_code() -> str:
    # uniform over [100000, 999999]
    return str(100000 + secrets.randbelow(900000))
