"""Re-run the overlap fanout for every partner key with at least two declarers.

Completes alerts and chat rooms left behind by a fanout that failed after its
declaration committed. Safe to run at any time and any number of times.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from overlap.domain.overlap.repo import PostgresOverlapRepository  # noqa: E402
from overlap.infra import postgres  # noqa: E402
from overlap.maintenance.rescan import DEFAULT_BATCH, rescan_overlaps  # noqa: E402
from overlap.obs import logging as obs_logging  # noqa: E402


async def _main(batch: int) -> int:
	await postgres.init_pool()
	try:
		report = await rescan_overlaps(repository=PostgresOverlapRepository(), batch=batch)
	finally:
		await postgres.close_pool()
	print(f"partners={report.partners} alerts_created={report.alerts_created} failures={len(report.failures)}")
	return 1 if report.failures else 0


def main() -> None:
	parser = argparse.ArgumentParser(description="Complete overlap fanout for all overlapping partner keys")
	parser.add_argument("--batch", type=int, default=DEFAULT_BATCH, help="partner keys fetched per page")
	args = parser.parse_args()
	obs_logging.configure_logging()
	raise SystemExit(asyncio.run(_main(args.batch)))


if __name__ == "__main__":
	main()
