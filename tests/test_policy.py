"""Tests for robots policies."""

import pytest

from hostcrawler.config import MIN_DELAY
from hostcrawler.errors import InvalidState
from hostcrawler.policy import Policy, PolicyManager, retrieve_policy

SITE = "https://www.example.com"


@pytest.fixture
def policy():
    return Policy(SITE, "*")


class TestEmptyPolicy:
    """An empty policy must refuse to answer."""

    def test_default_constructor_is_empty(self):
        assert Policy().is_empty

    def test_is_allowed_raises(self):
        with pytest.raises(InvalidState):
            Policy().is_allowed("/about")

    def test_add_allowed_raises(self):
        with pytest.raises(InvalidState):
            Policy().add_allowed("/about")

    def test_add_disallowed_raises(self):
        with pytest.raises(InvalidState):
            Policy().add_disallowed("/about")


class TestIsAllowed:
    """Longest match wins, ties favour disallow."""

    def test_path_not_mentioned_is_allowed(self, policy):
        policy.add_disallowed("/about")
        assert policy.is_allowed("/search")

    def test_no_rules_allows_everything(self, policy):
        assert policy.is_allowed("/anything/at/all")

    def test_disallow_match_is_disallowed(self, policy):
        policy.add_disallowed("/about")
        policy.add_disallowed("/search")
        assert not policy.is_allowed("/search")

    def test_equal_length_favours_disallow(self, policy):
        policy.add_disallowed("/home/s")
        policy.add_allowed("*search")
        assert not policy.is_allowed("/home/search/shirts")

    def test_longer_allow_wins(self, policy):
        policy.add_disallowed("/home")
        policy.add_allowed("/home/about")
        assert policy.is_allowed("/home/about/index.html")

    def test_longer_disallow_wins(self, policy):
        policy.add_disallowed("/home/about")
        policy.add_allowed("/home")
        assert not policy.is_allowed("/home/about/index.html")

    def test_wildcard_disallow(self, policy):
        policy.add_disallowed("/home/*/about")
        assert not policy.is_allowed("/home/x/y/about")
        assert not policy.is_allowed("/home/test1/test2/about")

    def test_single_character_rule(self, policy):
        policy.add_disallowed("/h")
        assert not policy.is_allowed("/home/test1/test2/about")

    def test_extension_rule_with_end_anchor(self, policy):
        policy.add_disallowed("*.pdf$")
        assert not policy.is_allowed("/home/test1/test2/about.pdf")
        assert policy.is_allowed("/home/about.pdf.html")

    def test_regex_characters_are_literal(self, policy):
        policy.add_disallowed("/a.b")
        assert policy.is_allowed("/axb")
        assert not policy.is_allowed("/a.b/c")


class TestRuleValidation:
    """Unsupported rules are skipped, not fatal."""

    def test_empty_rule_rejected(self, policy):
        assert not policy.add_disallowed("")
        assert policy.disallowed == []

    def test_query_rule_rejected(self, policy):
        assert not policy.add_disallowed("/search?q=1")
        assert policy.is_allowed("/search")

    def test_rules_ordered_by_descending_length(self, policy):
        for rule in ("/a", "/abc", "/ab"):
            policy.add_allowed(rule)
        assert policy.allowed == ["/abc", "/ab", "/a"]

    def test_duplicate_rule_kept_once(self, policy):
        policy.add_allowed("/a")
        policy.add_allowed("/a")
        assert policy.allowed == ["/a"]


ROBOTS = """\
# comment line
User-agent: *
Disallow: /private   # inline comment
Allow: /private/public
Crawl-delay: 5
this line has too many tokens
Disallow:

User-agent: badbot
User-agent: worsebot
Disallow: /
Crawl-delay: soon

Sitemap: https://www.example.com/sitemap.xml
Sitemap: /news-sitemap.xml
"""


@pytest.fixture
def manager(tmp_path):
    m = PolicyManager(SITE, f"{SITE}/robots.txt", tmp_path / "robots.txt", downloader=None)
    m.robots_detected = True
    m.parse(ROBOTS)
    return m


class TestPolicyManager:
    """Parsing robots files into per-agent policies."""

    def test_star_agent_rules(self, manager):
        policy = manager.get_policy("*")
        assert not policy.is_allowed("/private/data")
        assert policy.is_allowed("/private/public/page.html")
        assert policy.is_allowed("/")

    def test_crawl_delay_adds_one_second(self, manager):
        assert manager.get_policy("*").crawl_delay == 6

    def test_unparsable_crawl_delay_uses_default(self, manager):
        assert manager.get_policy("badbot").crawl_delay == MIN_DELAY

    def test_consecutive_agents_share_group(self, manager):
        assert not manager.get_policy("badbot").is_allowed("/index.html")
        assert not manager.get_policy("worsebot").is_allowed("/index.html")

    def test_sitemaps_are_host_wide(self, manager):
        expected = {
            "https://www.example.com/sitemap.xml",
            "https://www.example.com/news-sitemap.xml",
        }
        assert manager.get_policy("*").sitemaps == expected
        assert manager.get_policy("badbot").sitemaps == expected
        assert manager.get_policy("*").is_sitemap

    def test_unknown_agent_falls_back_to_star(self, manager):
        assert not manager.get_policy("goodbot").is_allowed("/private/x")

    def test_no_matching_group_allows_everything(self, tmp_path):
        m = PolicyManager(SITE, f"{SITE}/robots.txt", tmp_path / "robots.txt", downloader=None)
        m.robots_detected = True
        m.parse("User-agent: other\nDisallow: /\n")
        policy = m.get_policy("*")
        assert not policy.is_empty
        assert policy.is_allowed("/anything")

    def test_rules_before_any_agent_ignored(self, tmp_path):
        m = PolicyManager(SITE, f"{SITE}/robots.txt", tmp_path / "robots.txt", downloader=None)
        m.robots_detected = True
        m.parse("Disallow: /\nUser-agent: *\nAllow: /x\n")
        assert m.get_policy("*").disallowed == []


class TestRetrievePolicy:
    """Fetching the robots file through the downloader."""

    def test_found(self, tmp_path, fake_downloader):
        downloader = fake_downloader({f"{SITE}/robots.txt": ROBOTS})
        policy = retrieve_policy(SITE, tmp_path / "robots.txt", downloader)
        assert policy.is_robots
        assert not policy.is_empty
        assert not policy.is_allowed("/private/x")
        assert (tmp_path / "robots.txt").exists()

    def test_missing_robots_gives_empty_policy(self, tmp_path, fake_downloader):
        policy = retrieve_policy(SITE, tmp_path / "robots.txt", fake_downloader())
        assert policy.is_empty
        assert not policy.is_robots
        assert not policy.is_sitemap
