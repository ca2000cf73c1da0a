"""Authentication / authorization.

Deliberately small:

- ``user`` table: lowercased email, password hash, one opaque bearer token
- ``one_time_pin`` table: single-use pins minted by logged-in users

Clients send the token in the ``X-Auth-Token`` header. Logging in again replaces
the token, which invalidates the old one.
"""

from .deps import get_current_user
from .service import authenticate, login, new_one_time_pin, redeem_one_time_pin, register_user
from .users import bootstrap_user_if_needed

__all__ = [
    "get_current_user",
    "authenticate",
    "login",
    "new_one_time_pin",
    "redeem_one_time_pin",
    "register_user",
    "bootstrap_user_if_needed",
]
