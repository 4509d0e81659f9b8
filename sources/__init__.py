"""
sources — One adapter per ATS platform plus the fan-out orchestrator.
"""

from config import AppConfig
from monitoring import get_logger
from sources.ashby import AshbySource
from sources.bamboohr import BambooHRSource
from sources.base import JobSource, SourceToolkit
from sources.comeet import ComeetSource
from sources.greenhouse import GreenhouseSource
from sources.homerun import HomerunSource
from sources.lever import LeverSource
from sources.recruitee import RecruiteeSource
from sources.smartrecruiters import SmartRecruitersSource
from sources.teamtailor import TeamtailorSource
from sources.workable import WorkableSource

logger = get_logger("sources")

SOURCE_CLASSES: dict[str, type[JobSource]] = {
    cls.key: cls
    for cls in (
        GreenhouseSource, LeverSource, AshbySource, WorkableSource, SmartRecruitersSource,
        RecruiteeSource, TeamtailorSource, BambooHRSource, ComeetSource, HomerunSource,
    )
}


def build_sources(config: AppConfig, toolkit: SourceToolkit) -> list[JobSource]:
    """Instantiate the adapters that have at least one company configured."""
    sources = []
    for key, settings in config.sources.items():
        cls = SOURCE_CLASSES.get(key)
        if cls is None:
            logger.warning(f"Unknown source '{key}' in preferences — skipping")
            continue
        if not settings.companies:
            continue
        sources.append(cls(toolkit, settings))
    logger.info(f"Enabled sources: {', '.join(s.name for s in sources) or 'none'}")
    return sources


__all__ = ["SOURCE_CLASSES", "JobSource", "SourceToolkit", "build_sources"]
