"""
Grant the admin role to an existing user.

What it does:
- Looks the user up by email (trimmed + lowercased)
- Sets role=admin (no-op if already admin)
- Optionally revokes the user's refresh tokens so the new role shows up on next sign-in

Guardrails:
- Requires confirmation prompt unless --yes is passed
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys


# Allow `import app.*` from backend/
REPO_ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(BACKEND_DIR))


from app.core.config import settings  # noqa: E402
from app.core.database import database  # noqa: E402
from app.services.refresh_tokens import revoke_all_refresh_tokens  # noqa: E402
from app.services.users import promote_user_to_admin  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Promote a user to admin.")
    parser.add_argument("email", help="Email of the user to promote.")
    parser.add_argument("--revoke-sessions", action="store_true", help="Sign the user out everywhere.")
    parser.add_argument("--yes", action="store_true", help="Skip confirmation prompt.")
    args = parser.parse_args()

    if not args.yes:
        resp = input(f"Promote {args.email!r} to admin in ENV={settings.ENV}? Type YES to continue: ").strip()
        if resp != "YES":
            print("Cancelled.")
            return 1

    database.init(settings.database_url)
    try:
        with database.session() as db:
            try:
                user = promote_user_to_admin(db, args.email)
            except LookupError as e:
                print(f"Error: {e}")
                return 2

            if args.revoke_sessions:
                count = revoke_all_refresh_tokens(db, user.id)
                print(f"Revoked {count} refresh token(s).")

            db.refresh(user)
            print(f"Done. user_id={user.id} role={user.role}")
    finally:
        database.dispose()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
