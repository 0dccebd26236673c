"""
Create a user directly in the database (e.g. the first ROOT). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD ACCOUNT_ID [ROLE]
Example:
  python -m app.scripts.create_user root@example.com your-secure-password 2b1f...-uuid ROOT
"""
import argparse
import sys
import uuid

from app.core.database import session_scope
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password
from app.schemas.user import ROLE_VALUES, normalize_email
from app.services.users import UserRepository


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a user without going through the API.")
    parser.add_argument("email", help="Email address (stored lower-cased)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("account_id", type=uuid.UUID, help="Account UUID the user belongs to")
    parser.add_argument("role", nargs="?", default="ROOT", choices=sorted(ROLE_VALUES))
    args = parser.parse_args()

    email = normalize_email(args.email)
    if not email or "@" not in email or len(email) > 255:
        print("Invalid email.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    with session_scope() as db:
        users = UserRepository(db)
        if users.email_exists(email):
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user_id = users.insert_user(
            {
                "account_id": args.account_id,
                "email": email,
                "password_hash": hash_password(args.password),
                "role": args.role,
                "status": "ACTIVE",
            }
        )
        print(f"Created user '{email}' ({user_id}) with role '{args.role}'.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
