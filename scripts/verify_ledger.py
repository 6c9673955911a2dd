# verify_ledger.py
"""
Replays every card ledger of a tenant and compares it with the stored
balances. Exits with status 1 when any card is inconsistent.

Usage: python scripts/verify_ledger.py <tenant_id>
"""
import argparse
import logging
import sys
import os

sys.path.append(os.getcwd())

from app.crud import card as crud_card
from app.dependencies import get_db_context
from app.services import ledger

BATCH_SIZE = 500


def verify_tenant(tenant_id: str) -> int:
    inconsistent = 0
    checked = 0
    with get_db_context() as db:
        total = crud_card.count_cards(db, tenant_id)
        for offset in range(0, total, BATCH_SIZE):
            for card in crud_card.get_cards(db, tenant_id, skip=offset, limit=BATCH_SIZE):
                result = ledger.verify_card_ledger(db, card)
                checked += 1
                if not result.is_consistent:
                    inconsistent += 1
                    print(
                        f"MISMATCH card {card.card_uid}: stored {result.stored_balance}, "
                        f"replayed {result.replayed_balance}, broken entries {result.broken_links}"
                    )
    print(f"Checked {checked} cards, {inconsistent} inconsistent.")
    return inconsistent


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, stream=sys.stdout, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    parser = argparse.ArgumentParser(description="Verify card balances against the ledger.")
    parser.add_argument("tenant_id")
    args = parser.parse_args()
    sys.exit(1 if verify_tenant(args.tenant_id) else 0)
