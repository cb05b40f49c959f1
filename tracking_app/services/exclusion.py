"""
Decides whether analytics may be sent for a request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging
import re

from tracking_app.config import Settings
from tracking_app.models.context import RequestContext

logger = logging.getLogger(__name__)


class ExclusionRule(Enum):
    """Exclusion rules, in evaluation order"""
    SEND_ANALYTICS_DATA = "sendAnalyticsData"
    DEV_MODE = "sendAnalyticsInDevMode"
    CONSOLE_REQUEST = "consoleRequest"
    CP_REQUEST = "cpRequest"
    LIVE_PREVIEW = "livePreview"
    SERVER_EXCLUDES = "serverExcludes"
    BOT_USER_AGENT = "filterBotUserAgents"
    ADMIN_EXCLUDE = "adminExclude"
    GROUP_EXCLUDES = "groupExcludes"


@dataclass(frozen=True)
class ExclusionDecision:
    rule: Optional[ExclusionRule] = None

    @property
    def send(self) -> bool:
        return self.rule is None

    def __bool__(self) -> bool:
        return self.send


SEND = ExclusionDecision()


class CrawlerClassifier:
    """User-agent crawler detection backed by the ``crawlerdetect`` library."""

    def __init__(self):
        from crawlerdetect import CrawlerDetect

        self._detector = CrawlerDetect()

    def is_crawler(self, user_agent: Optional[str]) -> bool:
        if not user_agent:
            return False
        return bool(self._detector.isCrawler(user_agent))


class ExclusionEngine:
    """
    Evaluates the exclusion rules against a request.

    Rules run in a fixed order and the first match wins, so the reported rule
    is deterministic for a given context and settings. Evaluation has no side
    effects apart from the diagnostic log line.

    Args:
        settings: Tracking settings
        crawler: Object with ``is_crawler(user_agent) -> bool``; only consulted
            when ``filter_bot_user_agents`` is on
    """

    def __init__(self, settings: Settings, crawler=None):
        self.settings = settings
        self.crawler = crawler
        self._server_excludes = [
            (attribute, [re.compile(pattern) for pattern in patterns])
            for attribute, patterns in settings.server_excludes.items()
        ]

    def should_send(self, ctx: RequestContext) -> bool:
        return self.evaluate(ctx).send

    def evaluate(self, ctx: RequestContext) -> ExclusionDecision:
        rule = self._first_matching_rule(ctx)
        if rule is None:
            return SEND
        self._log_exclusion(rule, ctx)
        return ExclusionDecision(rule)

    def _first_matching_rule(self, ctx: RequestContext) -> Optional[ExclusionRule]:
        settings = self.settings

        if not settings.send_analytics_data:
            return ExclusionRule.SEND_ANALYTICS_DATA

        if not settings.send_analytics_in_dev_mode and settings.is_dev_mode:
            return ExclusionRule.DEV_MODE

        if ctx.is_console_request:
            return ExclusionRule.CONSOLE_REQUEST

        if ctx.is_cp_request:
            return ExclusionRule.CP_REQUEST

        if ctx.is_live_preview:
            return ExclusionRule.LIVE_PREVIEW

        if self._matches_server_excludes(ctx):
            return ExclusionRule.SERVER_EXCLUDES

        if settings.filter_bot_user_agents and self.crawler is not None:
            if self.crawler.is_crawler(ctx.user_agent):
                return ExclusionRule.BOT_USER_AGENT

        user = ctx.user
        if user is not None:
            if settings.admin_exclude and user.is_admin:
                return ExclusionRule.ADMIN_EXCLUDE

            if any(user.is_in_group(group) for group in settings.group_excludes):
                return ExclusionRule.GROUP_EXCLUDES

        return None

    def _matches_server_excludes(self, ctx: RequestContext) -> bool:
        for attribute, patterns in self._server_excludes:
            value = ctx.server.get(attribute)
            if value is None:
                continue
            if any(pattern.search(value) for pattern in patterns):
                return True
        return False

    def _log_exclusion(self, rule: ExclusionRule, ctx: RequestContext) -> None:
        if self.settings.log_excluded_analytics or self.settings.is_dev_mode:
            logger.info("Analytics excluded for: %s due to: `%s`", ctx.client_ip, rule.value)
