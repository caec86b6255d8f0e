"""Engine entry point.

    engine, db_engine = await start_engine(persist=True)
    ...
    await stop_engine(engine, db_engine)

With persist=True every committed change is mirrored to DATABASE_URL by
SqlSnapshotWriter; without it the engine is purely in-memory.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import Settings, settings as default_settings
from src.pm_common.database import build_engine, build_session_factory, create_schema
from src.pm_engine.engine import PredictionMarketEngine
from src.pm_store.infrastructure.snapshot_writer import SqlSnapshotWriter

VERSION = "0.1.0"

logger = logging.getLogger("pm.main")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def start_engine(
    settings: Settings | None = None, persist: bool = False
) -> tuple[PredictionMarketEngine, AsyncEngine | None]:
    settings = settings or default_settings
    configure_logging(settings)

    engine = PredictionMarketEngine(settings=settings)
    db_engine: AsyncEngine | None = None
    if persist:
        db_engine = build_engine(settings)
        await create_schema(db_engine)
        engine.subscribe(SqlSnapshotWriter(build_session_factory(db_engine)))

    logger.info(
        "%s %s started (alpha=%s fee=%dbps persist=%s)",
        settings.APP_NAME,
        VERSION,
        settings.LSLMSR_ALPHA,
        settings.FEE_RATE_BPS,
        persist,
    )
    return engine, db_engine


async def stop_engine(engine: PredictionMarketEngine, db_engine: AsyncEngine | None) -> None:
    """Flush pending notifications, then release the DB pool."""
    await engine.events.drain()
    if db_engine is not None:
        await db_engine.dispose()


def health(engine: PredictionMarketEngine) -> dict[str, str | int]:
    stats = engine.market_stats()
    return {
        "status": "ok",
        "version": VERSION,
        "markets": stats.total_markets,
        "fees": engine.fees.total_fees,
    }
