"""Rate limiting shared by all routers."""

from slowapi import Limiter
from slowapi.util import get_remote_address

# One limiter for every router so main can register it on app.state and
# tests can reset its counters between cases.
limiter = Limiter(key_func=get_remote_address)
