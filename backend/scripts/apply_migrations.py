"""Apply pending SQL migrations from ``backend/migrations`` in version order."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from overlap.infra import postgres  # noqa: E402
from overlap.obs import logging as obs_logging  # noqa: E402

MIGRATIONS_DIR = BACKEND_ROOT / "migrations"

logger = logging.getLogger("overlap.migrations")


async def apply_pending(directory: Path) -> list[str]:
	paths = sorted(directory.glob("*.sql"))
	if not paths:
		raise SystemExit(f"no migration files found in {directory}")
	pool = await postgres.init_pool()
	applied_now: list[str] = []
	async with pool.acquire() as conn:
		await conn.execute(
			"""
			CREATE TABLE IF NOT EXISTS schema_migrations (
				version TEXT PRIMARY KEY,
				applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
			)
			"""
		)
		rows = await conn.fetch("SELECT version FROM schema_migrations")
		applied = {row["version"] for row in rows}
		for path in paths:
			version = path.name.split("_", 1)[0]
			if version in applied:
				continue
			async with conn.transaction():
				await conn.execute(path.read_text(encoding="utf-8"))
				await conn.execute(
					"INSERT INTO schema_migrations (version) VALUES ($1) ON CONFLICT (version) DO NOTHING",
					version,
				)
			logger.info("applied migration", extra={"migration": path.name})
			applied_now.append(path.name)
	return applied_now


async def _main(directory: Path) -> None:
	try:
		applied = await apply_pending(directory)
	finally:
		await postgres.close_pool()
	if not applied:
		logger.info("schema up to date")


def main() -> None:
	parser = argparse.ArgumentParser(description=__doc__)
	parser.add_argument("--dir", type=Path, default=MIGRATIONS_DIR, help="directory holding NNNN_name.sql files")
	args = parser.parse_args()
	obs_logging.configure_logging()
	asyncio.run(_main(args.dir))


if __name__ == "__main__":
	main()
