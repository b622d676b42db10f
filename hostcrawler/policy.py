"""
Robots exclusion policies.

A PolicyManager parses a site's robots file into one Policy per user
agent. Policy.is_allowed() resolves allow/disallow rules with the
longest-match-wins strategy, equal length matches favour disallow.
"""

import logging
import re
from collections import namedtuple
from pathlib import Path
from urllib.parse import urljoin, urlsplit

from hostcrawler.config import DEFAULT_AGENT, MIN_DELAY
from hostcrawler.errors import InvalidState

Rule = namedtuple("Rule", ["text", "pattern"])


def compile_rule(value: str) -> Rule:
    """`*` matches any run of characters, a trailing `$` anchors the end."""
    anchored = value.endswith("$")
    body = value[:-1] if anchored else value
    pattern = ".*".join(re.escape(part) for part in body.split("*"))
    if anchored:
        pattern += "$"
    return Rule(value, re.compile(pattern))


class Policy:
    def __init__(self, site: str = None, agent: str = None, logger=None):
        self.site = site
        self.agent = agent
        self.sitemaps = set()
        self.is_robots = False
        self.crawl_delay = MIN_DELAY
        self.logger = logger or logging.getLogger(__name__)

        # Kept ordered by descending rule length
        self._allowed = []
        self._disallowed = []

    @property
    def is_empty(self) -> bool:
        return self.site is None

    @property
    def is_sitemap(self) -> bool:
        return bool(self.sitemaps)

    @property
    def allowed(self):
        return [r.text for r in self._allowed]

    @property
    def disallowed(self):
        return [r.text for r in self._disallowed]

    def _check_state(self):
        if self.is_empty:
            raise InvalidState("Policy is empty, it was not produced by any site")

    def _is_valid(self, value: str) -> bool:
        if not value:
            return False

        if urlsplit(urljoin(self.site, value)).query:
            self.logger.warning("Skipping query record %s", value)
            return False

        return True

    def _add(self, rules: list, value: str) -> bool:
        self._check_state()

        if not self._is_valid(value):
            self.logger.warning("Policy record %r is not supported", value)
            return False

        if any(r.text == value for r in rules):
            return True

        rules.append(compile_rule(value))
        rules.sort(key=lambda r: len(r.text), reverse=True)
        return True

    def add_allowed(self, value: str) -> bool:
        return self._add(self._allowed, value)

    def add_disallowed(self, value: str) -> bool:
        return self._add(self._disallowed, value)

    @staticmethod
    def _longest_match(rules, local_path: str) -> int:
        for rule in rules:
            if rule.pattern.search(local_path):
                return len(rule.text)
        return -1

    def is_allowed(self, local_path: str) -> bool:
        """
        Check whether a path relative to the site may be crawled.

        Lengths are measured on the rule text as written in the robots
        file, not on the expanded pattern.
        """
        self._check_state()

        max_disallowed = self._longest_match(self._disallowed, local_path)
        if max_disallowed == -1:
            return True

        max_allowed = self._longest_match(self._allowed, local_path)
        return max_allowed > max_disallowed


class PolicyManager:
    """Retrieves a site's robots file and hands out per-agent policies."""

    def __init__(self, site: str, robots_url: str, robots_path, downloader, logger=None):
        if not site:
            raise ValueError("site is required")

        self.site = site
        self.robots_url = robots_url
        self.robots_path = Path(robots_path)
        self.downloader = downloader
        self.robots_detected = False
        self.sitemaps = set()
        self.policies = {}
        self.logger = logger or logging.getLogger(__name__)

    def _policy(self, agent: str) -> Policy:
        if agent not in self.policies:
            self.policies[agent] = Policy(self.site, agent, logger=self.logger)
        return self.policies[agent]

    def parse(self, text: str):
        agents = []
        grouping = False

        for raw in text.splitlines():
            line = raw.split("#", 1)[0]
            parts = line.split()
            if len(parts) != 2:
                continue

            key = parts[0].lower()
            value = parts[1]

            if key == "user-agent:":
                # Consecutive user-agent lines share one group of rules
                if not grouping:
                    agents = []
                agents.append(value.lower())
                self._policy(value.lower())
                grouping = True
                continue

            grouping = False

            if key == "sitemap:":
                self.sitemaps.add(urljoin(self.site + "/", value))

            elif key in ("allow:", "disallow:", "crawl-delay:"):
                if not agents:
                    self.logger.debug("Ignoring %s outside of a user-agent group", line.strip())
                    continue

                for agent in agents:
                    policy = self.policies[agent]
                    if key == "allow:":
                        policy.add_allowed(value)
                    elif key == "disallow:":
                        policy.add_disallowed(value)
                    else:
                        try:
                            delay = int(value)
                        except ValueError:
                            delay = MIN_DELAY - 1
                        # One extra second on top of what the site asks for
                        policy.crawl_delay = delay + 1

    def retrieve(self) -> bool:
        if not self.downloader.download(self.robots_url, self.robots_path):
            return False

        self.robots_detected = True
        self.parse(self.robots_path.read_text(encoding="utf-8", errors="replace"))
        return True

    def get_policy(self, agent: str = DEFAULT_AGENT) -> Policy:
        """
        Policy for `agent`, falling back to the `*` group and then to a
        rule-less policy for the site. Empty when no robots file was found.
        """
        if not self.robots_detected:
            return Policy(logger=self.logger)

        agent = agent.lower()
        policy = self.policies.get(agent) or self.policies.get(DEFAULT_AGENT)
        if policy is None:
            policy = Policy(self.site, agent, logger=self.logger)

        # Site wide settings, not agent specific
        policy.sitemaps = set(self.sitemaps)
        policy.is_robots = self.robots_detected
        return policy


def retrieve_policy(site: str, robots_path, downloader, agent: str = DEFAULT_AGENT, logger=None) -> Policy:
    logger = logger or logging.getLogger(__name__)

    manager = PolicyManager(site, f"{site}/robots.txt", robots_path, downloader, logger=logger)
    if not manager.retrieve():
        logger.error("Failed to obtain policy for %s", site)

    return manager.get_policy(agent)
