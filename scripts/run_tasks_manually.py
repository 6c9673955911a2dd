# run_tasks_manually.py
import asyncio
import logging
import sys
import os

# Make the app package importable when run from the project root
sys.path.append(os.getcwd())

from app.services.payment_expiration import expire_pending_payments_task


async def main():
    """Runs the scheduled jobs once, in order."""
    print("--- Manual Task Runner ---")

    print("\n[1/1] Running: expire_pending_payments_task...")
    await expire_pending_payments_task()
    print("Done.")

    print("\n--- All tasks completed! ---")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, stream=sys.stdout, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nScript interrupted by user.")
