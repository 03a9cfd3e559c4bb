import logging

from ftz_outbound.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "staging":
        return settings.FLOW_LOGS_STAGING_ENABLED
    if category == "signoff":
        return settings.FLOW_LOGS_SIGNOFF_ENABLED
    if category == "entry_summary":
        return settings.FLOW_LOGS_ENTRY_SUMMARY_ENABLED
    if category == "entry_group":
        return settings.FLOW_LOGS_ENTRY_GROUP_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
