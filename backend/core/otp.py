# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""One-time passcodes for account activation."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

OTP_LENGTH = 6


@dataclass(frozen=True)
class OneTimePasscode:
    code: str             # always OTP_LENGTH ASCII digits, never leading-zero
    expires_at: datetime  # absolute, tz-aware UTC

    def __repr__(self) -> str:
        # keep the code out of tracebacks and debug logs
        return f"OneTimePasscode(code='******', expires_at={self.expires_at.isoformat()})"


class OtpGenerator:
    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=5),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ttl = ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def generate(self) -> OneTimePasscode:
        # CSPRNG in [100000, 999999]
        code = str(100_000 + secrets.randbelow(900_000))
        return OneTimePasscode(code=code, expires_at=self._clock() + self.ttl)


def is_well_formed(code: str) -> bool:
    """True for exactly six ASCII digits."""
    return len(code) == OTP_LENGTH and code.isascii() and code.isdigit()
