# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the single OWNER account.

Run once after the initial migration:
    python bin/seed_owner.py

The script reads FIRST_OWNER_EMAIL, FIRST_OWNER_PASSWORD and
FIRST_OWNER_NAME from etc/app.conf.  The OWNER is created already active
(no OTP round-trip).  Running it again is harmless: an existing OWNER is
left untouched and no second one is ever created.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_owner.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from core.config import settings           # noqa: E402
from core.errors import AuthError          # noqa: E402
from core.security import SecretHasher     # noqa: E402
from database import session_scope         # noqa: E402
from users.repository import UserRepository  # noqa: E402
from users.service import UserService      # noqa: E402


def seed() -> int:
    if not settings.first_owner_email or not settings.first_owner_password:
        print("[seed_owner] FIRST_OWNER_EMAIL or FIRST_OWNER_PASSWORD not set in etc/app.conf – nothing to do.")
        return 0

    with session_scope() as db:
        service = UserService(UserRepository(db), SecretHasher.from_settings(settings), settings)
        try:
            owner = service.seed_owner(
                settings.first_owner_email,
                settings.first_owner_password,
                settings.first_owner_name,
            )
        except AuthError as exc:
            print(f"[seed_owner] {exc.message}")
            return 1
        print(f"[seed_owner] Owner '{owner.email}' ready (id={owner.id}).")
        return 0


if __name__ == "__main__":
    sys.exit(seed())
