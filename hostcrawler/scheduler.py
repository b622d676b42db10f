"""
Crawl control loop.

Pops the highest priority host from the frontier and runs one crawl
cycle for it: policy -> sitemap -> scrape -> link extraction -> graph
update. The frontier is refilled from the graph after every completed
host so newly found hosts are schedulable straight away. A host whose
cycle fails is marked do-not-process and the loop moves on.
"""

import logging
import shutil
import threading
from enum import Enum
from pathlib import Path

from hostcrawler.config import MAX_PRIORITY, CrawlerConfig
from hostcrawler.events import EventBus, Status
from hostcrawler.fetcher import Downloader
from hostcrawler.frontier import Frontier
from hostcrawler.graph import DiscoveryGraph
from hostcrawler.normalizer import host_name, normalize_seed
from hostcrawler.parser import parse_file
from hostcrawler.policy import retrieve_policy
from hostcrawler.scraper import PageChannel, Scraper, ScrapeSettings
from hostcrawler.site import Site
from hostcrawler.sitemap import SitemapDiscoverer
from hostcrawler.storage import graph_store, site_store


class CrawlState(Enum):
    IDLE = "idle"
    RECONSTRUCTING = "reconstructing"
    SCHEDULING = "scheduling"
    CRAWLING = "crawling"


class CrawlScheduler:
    def __init__(self, config: CrawlerConfig, seeds, graph: DiscoveryGraph = None,
                 downloader=None, events: EventBus = None, logger=None):
        self.config = config.validate()
        self.logger = logger or logging.getLogger(__name__)

        self.seeds = []
        for raw in seeds:
            seed = normalize_seed(raw, config.scheme)
            if seed is None:
                self.logger.warning("Ignoring invalid seed %r", raw)
            elif seed not in self.seeds:
                self.seeds.append(seed)
        if not self.seeds:
            raise ValueError("At least one valid seed host is required")

        self.events = events or EventBus(config.event_buffer, logger=self.logger)
        self.downloader = downloader or Downloader(
            config.user_agent, config.request_timeout, logger=self.logger
        )
        self.frontier = Frontier()
        self.sites = {}
        self.state = CrawlState.IDLE

        self._graph = graph
        self._cancelled = threading.Event()
        self._host_cancel = None

    @property
    def graph(self) -> DiscoveryGraph:
        return self._graph

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        """Stop after the current download, the remaining hosts are left queued."""
        self._cancelled.set()
        host_cancel = self._host_cancel
        if host_cancel is not None:
            host_cancel.set()

    def _status(self, status: str, progress: float = 0.0):
        self.events.publish(Status(status, progress))

    # ------------------------------------------------------------
    # SCHEDULING
    # ------------------------------------------------------------

    def _load_graph(self):
        if self._graph is not None:
            if self._graph.events is None:
                self._graph.events = self.events
            return

        if self.config.serialize_graph:
            self._graph = graph_store.reconstruct_from_directory(
                self.config.output_path, events=self.events
            )
        else:
            self._graph = DiscoveryGraph(events=self.events)

    def _schedule(self):
        for seed in self.seeds:
            if self._graph.exists(seed) and self._graph.discovered(seed):
                continue
            self.frontier.push(seed, MAX_PRIORITY)

        self.frontier.merge(self._graph)

    def crawl(self) -> DiscoveryGraph:
        Path(self.config.output_path).mkdir(parents=True, exist_ok=True)

        self.state = CrawlState.RECONSTRUCTING
        self._load_graph()

        self.state = CrawlState.SCHEDULING
        self._schedule()

        self._status("Crawling started", 0.0)
        self.logger.info("Crawl started with %d host(s) queued", len(self.frontier))

        try:
            while not self.cancelled:
                item = self.frontier.pop()
                if item is None:
                    break

                host, priority = item
                self.logger.info("Crawling %s (priority %d)", host, priority)

                self.state = CrawlState.CRAWLING
                if self._crawl_host(host):
                    self.frontier.merge(self._graph)
                self.state = CrawlState.SCHEDULING

        finally:
            if self.config.serialize_graph:
                try:
                    graph_store.serialize(
                        self._graph, Path(self.config.output_path) / graph_store.GRAPH_FILE
                    )
                except OSError as e:
                    self.logger.error("Failed to serialize graph: %s", e)

            self.state = CrawlState.IDLE

        if self.cancelled:
            self.logger.info("Crawl cancelled, %d host(s) left queued", len(self.frontier))
            self._status("Crawling cancelled", 1.0)
        else:
            self.logger.info("Crawl completed, %d host(s) in graph", len(self._graph))
            self._status("Crawling completed", 1.0)

        return self._graph

    # ------------------------------------------------------------
    # PER HOST CYCLE
    # ------------------------------------------------------------

    def _crawl_host(self, host: str) -> bool:
        graph = self._graph

        if graph.exists(host) and graph.discovered(host):
            self.logger.info("Host %s has already been discovered", host)
            return False

        site = Site(host, self.config.output_path)
        self.sites[host] = site
        site.prepare()

        attributes = {}
        try:
            self._status(f"Crawling {host}", 0.0)

            self._status("Retrieving policy", 0.0)
            policy = retrieve_policy(
                host, site.robots_path, self.downloader, self.config.agent, logger=self.logger
            )
            site.robots = policy.is_robots
            attributes["robots"] = str(policy.is_robots).lower()
            attributes["sitemap"] = str(policy.is_sitemap).lower()

            result = self._resolve_sitemap(site, policy)

            if not graph.add_vertex(host, attributes):
                # Pages parsed by the interrupted run are scraped again
                self.logger.info("Resuming interrupted crawl of %s", host)
                graph.clear_edges(host)

            self._scrape(site, policy, result)

            if self.cancelled:
                # Left undiscovered so the next run picks it up again
                site.status = "interrupted"
                self.logger.info("Crawling %s interrupted", host)
                return False

            graph.mark_discovered(host)
            site.status = "completed"
            self.logger.info(
                "Crawling %s completed: %d page(s) scraped, %d connection(s)",
                host, site.scraped_pages, len(graph.get_edges(host)),
            )
            self._status(f"{host} completed", 1.0)
            return True

        except Exception as e:
            self.logger.exception("Failed to crawl %s: %s", host, e)

            if not graph.exists(host):
                graph.add_vertex(host, attributes)
            graph.mark_do_not_process(host)
            site.status = "do-not-process"
            self._status(f"{host} failed", 1.0)
            return False

        finally:
            self._finish_host(site)

    def _resolve_sitemap(self, site: Site, policy):
        if not policy.is_sitemap:
            raise NotImplementedError(
                f"{site.url} does not advertise a sitemap, dynamic discovery is not supported"
            )

        self._status("Retrieving sitemap", 0.0)

        site.sitemaps = sorted(policy.sitemaps)
        discoverer = SitemapDiscoverer(
            policy,
            self.downloader,
            site.sitemap_root,
            max_url_count=self.config.host_urls_limit,
            max_index_count=self.config.sitemap_index_limit,
            save_sitemap_files=self.config.save_sitemap_files,
            logger=self.logger,
        )
        result = discoverer.discover(site.sitemaps)

        site.discovered_urls = result.discovered
        site.accepted_urls = len(result)

        if self.config.save_urls:
            site_store.write_url_list(site.urls_file, result.urls)

        self._status("Sitemap obtained", 0.0)
        return result

    def _scrape(self, site: Site, policy, result):
        host = site.url
        pages = result.html_pages(self.config.extensions)
        site.html_pages = len(pages)

        host_cancel = threading.Event()
        self._host_cancel = host_cancel
        # cancel() may have run before the event was published
        if self.cancelled:
            host_cancel.set()

        channel = PageChannel(maxsize=self.config.sample_count)
        scraper = Scraper(
            pages,
            self.downloader,
            site.html_path,
            channel,
            settings=ScrapeSettings.from_policy(policy, self.config.sample_count),
            progress=lambda p: self._status(f"Scraping {host}", p),
            cancel_event=host_cancel,
            name=f"Scraper-{host_name(host)}",
            logger=self.logger,
        )
        scraper.start()

        try:
            # Consumer: blocks until the scraper closes the channel
            for path in channel:
                children = parse_file(path, host, self.config.scheme)
                for child in sorted(children):
                    self._graph.add_edge(host, child)

                if self.config.delete_html_after_scrape:
                    Path(path).unlink(missing_ok=True)

        except BaseException:
            scraper.stop()
            # Unblock the producer so it can close the channel and exit
            for _ in channel:
                pass
            raise

        finally:
            scraper.join()
            self._host_cancel = None

        if scraper.error is not None:
            raise scraper.error

        site.scraped_pages = scraper.downloaded

    def _finish_host(self, site: Site):
        """Persist the host and drop its transient files, failures are only logged."""
        try:
            if self.config.serialize_graph and self._graph.exists(site.url):
                graph_store.persist_vertex(self._graph, site.url, self.config.output_path)

            if not self.config.save_robots_file:
                site.robots_path.unlink(missing_ok=True)

            if not self.config.save_sitemap_files:
                shutil.rmtree(site.sitemap_root, ignore_errors=True)

            if self.config.delete_html_after_scrape:
                shutil.rmtree(site.html_path, ignore_errors=True)

            if self.config.serialize_site:
                site_store.write_site(site)

        except OSError as e:
            self.logger.error("Failed to finish %s: %s", site.url, e)
