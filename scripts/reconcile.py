"""Rebuild blog and author counters from likes, comments and blogs."""
import argparse
import asyncio
import logging
import time

from blogsphere.database import async_session
from blogsphere.services.reconcile_service import reconcile_all


async def reconcile(dry_run: bool = False) -> int:
    async with async_session() as session:
        repaired = await reconcile_all(session)
        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    return repaired


def main():
    parser = argparse.ArgumentParser(description="Repair drifted blog / author counters")
    parser.add_argument("--dry-run", action="store_true", help="Report drift without writing")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    start = time.perf_counter()
    repaired = asyncio.run(reconcile(dry_run=args.dry_run))
    verb = "would repair" if args.dry_run else "repaired"
    print(f"{verb} {repaired} document(s) in {time.perf_counter() - start:.1f}s")


if __name__ == "__main__":
    main()
