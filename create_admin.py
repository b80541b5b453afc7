"""
Promote an account to admin.

Role changes are admin-only through the API, so the first admin has to be
created out of band:

    python create_admin.py admin@bloodlink.org "Super Admin"
"""
import os
import sys

import django

# Setup Django Environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
django.setup()

from bloodlink.authorization import ADMIN
from bloodlink.exceptions import BloodLinkError
from bloodlink.services import get_services


def create_admin(email, name=None):
    accounts = get_services().accounts

    if accounts.get(email) is None:
        accounts.register(email, {"name": name or "Super Admin"})
        print(f"Registered account: {email}")

    account = accounts.set_role(email, ADMIN)
    print(f"SUCCESS: {account['email']} is now {account['role']}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python create_admin.py <email> [name]")
        sys.exit(2)
    try:
        create_admin(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None)
    except BloodLinkError as e:
        print(f"FAILED: {e.reason}")
        print("Tip: Check MONGO_URI and that your IP is whitelisted in MongoDB Atlas Network Access")
        sys.exit(1)
