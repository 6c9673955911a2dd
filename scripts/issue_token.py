# issue_token.py
"""
Prints a bearer token for a tenant admin or a cashier.

Usage: python scripts/issue_token.py <user_id> <tenant_id> <tenant_admin|cashier> [--store STORE_ID]
"""
import argparse
import sys
import os

sys.path.append(os.getcwd())

from app.services.auth import ROLES, issue_staff_token

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Issue a staff access token.")
    parser.add_argument("user_id")
    parser.add_argument("tenant_id")
    parser.add_argument("role", choices=ROLES)
    parser.add_argument("--store", dest="store_id", default=None)
    args = parser.parse_args()
    print(issue_staff_token(args.user_id, args.tenant_id, args.role, args.store_id))
